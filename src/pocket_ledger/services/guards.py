from typing import Optional

from pocket_ledger.domain.errors import AuthorizationError


def ensure_owned_by(aggregate, user_id: Optional[str], resource: str) -> None:
    """
    Raise AuthorizationError unless the aggregate belongs to user_id.

    A user_id of None means the caller already authorized the request.
    """
    if user_id is None or aggregate.belongs_to(user_id):
        return
    raise AuthorizationError(resource, aggregate.id, user_id)
