"""Provision a SQL Server VM on Azure with striped data volumes."""

__version__ = "1.0.0"
