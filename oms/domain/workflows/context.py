from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import User

# Job document as it is being written: camelCase keys, relations as ids
JobDraft = dict[str, Any]


@dataclass
class JobChangeContext:
    """Everything a pipeline stage may read besides the draft itself"""

    db: Session
    operation: str  # "create" or "update"
    original: Optional[JobDraft] = None
    user: Optional[User] = None
    # Stage-to-stage signals, e.g. "invoice_ready" set by the createInvoice trigger
    flags: dict[str, Any] = field(default_factory=dict)

    @property
    def is_create(self) -> bool:
        return self.operation == "create"

    @property
    def is_update(self) -> bool:
        return self.operation == "update"
