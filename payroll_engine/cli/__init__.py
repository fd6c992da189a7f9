"""Payroll Engine CLI."""
