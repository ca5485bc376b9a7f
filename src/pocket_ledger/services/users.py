from typing import Any, Dict, Optional

from pocket_ledger.domain.errors import InvalidArgumentError, UserDoesNotExistError
from pocket_ledger.domain.models import User, ensure_uuid
from pocket_ledger.repositories.base import UserRepository
from pocket_ledger.utils.logging import get_logger

logger = get_logger(__name__)


class RegisterUser:
    """Create the user record for an id handed out by the caller"""

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def execute(self, user_id: str, first_name: str, last_name: str) -> User:
        """
        Raises:
            InvalidArgumentError: If a name is malformed or the id is taken
        """
        if self.repository.exists(ensure_uuid(user_id, "user id")):
            raise InvalidArgumentError(f"User {user_id} is already registered")

        user = User.create(id=user_id, first_name=first_name, last_name=last_name)
        self.repository.save(user)

        logger.info("User registered", user_id=user.id)
        return user


class FindUser:
    """Load a user's primitives or fail with UserDoesNotExistError"""

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def execute(self, user_id: str) -> Dict[str, Any]:
        user = self.repository.search(ensure_uuid(user_id, "user id"))
        if user is None:
            raise UserDoesNotExistError(user_id)
        return user.to_primitives()


class UpdateUser:

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def execute(
        self,
        user_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """
        Change a user's first and/or last name.

        Args:
            user_id: User to update
            first_name: New first name, None to keep the current one
            last_name: New last name, None to keep the current one

        Raises:
            UserDoesNotExistError: If the user is not found
            InvalidArgumentError: If a name is malformed
        """
        user = self.repository.search(ensure_uuid(user_id, "user id"))
        if user is None:
            raise UserDoesNotExistError(user_id)

        user.update(first_name=first_name, last_name=last_name)
        self.repository.save(user)
        return user
