"""
QuiverFaults - typed fault signals for resource actions.

Every error raised by the orchestrator is a Fault with a stable code,
a domain, a severity and an HTTP status used at the response boundary.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    ConfigInvalidFault,
    DriverNotFoundFault,
    OperationNotAllowedFault,
    ResourceNotFoundFault,
    ValidationFault,
    PersistenceFault,
    AccessDeniedFault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Domain faults
    "ConfigFault",
    "ConfigInvalidFault",
    "DriverNotFoundFault",
    "OperationNotAllowedFault",
    "ResourceNotFoundFault",
    "ValidationFault",
    "PersistenceFault",
    "AccessDeniedFault",
]
