"""
Services orchestrating the reconcilers across databases.

Exports the tenant iteration driver used at application startup.
"""

from .initializer import (  # noqa: F401
    InitializationSummary,
    ResourcesTableBuilder,
    TargetOutcome,
    run_resource_initialization,
)
