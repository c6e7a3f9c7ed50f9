"""
Error types raised and collected while generating an orchestration document.
"""
from typing import List, Optional, Sequence


class FleetError(Exception):
    """
    Base class for every error the engine reports.
    """


class ValidationError(FleetError):
    """
    A service or resource request carries a value the engine cannot accept.

    :param message: Human readable description.
    :param value: The offending value, verbatim.
    :param service: The service the value belongs to, if any.
    """
    def __init__(self, message: str, value: Optional[str] = None, service: Optional[str] = None):
        if service:
            message = f"service '{service}': {message}"
        super().__init__(message)
        self.value = value
        self.service = service


class UnsupportedKindError(FleetError):
    """
    A request names a resource kind with no registered provider.
    """
    def __init__(self, kind: str, service: Optional[str] = None):
        message = f"unsupported resource kind '{kind}'"
        if service:
            message = f"service '{service}': {message}"
        super().__init__(message)
        self.kind = kind
        self.service = service


class ConflictError(FleetError):
    """
    Two consumers of one shared entry disagree on a value that shapes the entry.
    Only raised under the ``error`` conflict policy.
    """
    def __init__(self, entry: str, consumer: str, field: str, first_consumer: str):
        super().__init__(
            f"service '{consumer}': '{field}' for shared entry '{entry}' differs from "
            f"the value already set by '{first_consumer}'"
        )
        self.entry = entry
        self.consumer = consumer
        self.field = field
        self.first_consumer = first_consumer


class GraphError(FleetError):
    """
    The dependency graph references a missing entry or contains a cycle.
    """
    def __init__(self, message: str, target: Optional[str] = None, cycle: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.target = target
        self.cycle = list(cycle) if cycle else []


class GenerationError(FleetError):
    """
    Aggregate of every error found during one generation run.
    """
    def __init__(self, errors: List[FleetError]):
        self.errors = list(errors)
        lines = "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(f"generation failed with {len(self.errors)} error(s):\n{lines}")


class ConfigError(GenerationError):
    """
    The project configuration file could not be turned into service specs.
    """
