from functools import lru_cache
from typing import Annotated, Optional
from fastapi import Depends, Header

from app.common.audit import resolve_actor
from app.database.ledger import LedgerStore, build_ledger_store
from app.modules.notifications.service import ChangeNotifier, build_notifier


@lru_cache
def get_ledger() -> LedgerStore:
    """Process-wide ledger store, built once from settings."""
    return build_ledger_store()


@lru_cache
def get_notifier() -> ChangeNotifier:
    return build_notifier()


def get_actor(x_actor: Optional[str] = Header(None, description="Display name or id of the acting user")) -> str:
    """Actor for audit trails; requests without one are attributed to the system actor."""
    return resolve_actor(x_actor)


ledger_dependency = Annotated[LedgerStore, Depends(get_ledger)]
notifier_dependency = Annotated[ChangeNotifier, Depends(get_notifier)]
actor_dependency = Annotated[str, Depends(get_actor)]
