"""Payroll Engine - progressive tax, deductions and social security for monthly payroll."""

__version__ = "0.1.0"
