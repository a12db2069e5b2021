"""
Core application utilities for settings, logging and errors.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation id and reconciliation target context
- The error taxonomy shared by the reconcilers and the store
"""
