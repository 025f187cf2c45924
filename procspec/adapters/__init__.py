"""Execution layers for running generated SQL."""

from procspec.adapters.dbapi import DBAPIExecutionLayer

__all__ = ("DBAPIExecutionLayer",)
