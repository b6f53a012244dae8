from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class AgendaError(Exception):
    """Базовая ошибка доменного слоя."""


class ValidationError(AgendaError):
    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or []


class ConsistencyViolation(AgendaError):
    def __init__(self, status, payment_status):
        super().__init__(f"Inconsistent status pair: status={status!r}, payment_status={payment_status!r}")
        self.status = status
        self.payment_status = payment_status


class NotFound(AgendaError):
    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class PersistenceError(AgendaError):
    def __init__(self, operation: str, entity_id: Any = None, cause: Optional[Exception] = None):
        detail = f"{operation} failed"
        if entity_id is not None:
            detail += f" for {entity_id}"
        if cause is not None:
            detail += f": {cause}"
        super().__init__(detail)
        self.operation = operation
        self.entity_id = entity_id
        self.cause = cause


@dataclass
class BatchResult:
    succeeded: List[int] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    def add_failure(self, entity_id, reason):
        self.failed.append({"id": entity_id, "reason": str(reason)})

    @property
    def partial(self):
        return bool(self.succeeded) and bool(self.failed)

    @property
    def ok(self):
        return not self.failed


@dataclass
class DeletionResult:
    deleted_ids: List[int] = field(default_factory=list)
    skipped_ids: List[int] = field(default_factory=list)
    new_parent_id: Optional[int] = None
    settled_count: int = 0
    warning: Optional[str] = None

    @property
    def deleted_count(self):
        return len(self.deleted_ids)

    @property
    def nothing_to_do(self):
        return not self.deleted_ids
