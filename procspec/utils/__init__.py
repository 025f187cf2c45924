from procspec.utils import dispatch, logging, module_loader

__all__ = ("dispatch", "logging", "module_loader")
