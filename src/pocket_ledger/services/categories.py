from typing import Any, Dict, List, Optional

from pocket_ledger.domain.errors import CategoryDoesNotExistError
from pocket_ledger.domain.models import Category
from pocket_ledger.repositories.base import CategoryRepository
from pocket_ledger.services.guards import ensure_owned_by


class CreateCategory:

    def __init__(self, repository: CategoryRepository):
        self.repository = repository

    async def execute(self, user_id: str, name: str, category_id: Optional[str] = None) -> Category:
        category = Category.create(user_id=user_id, name=name, id=category_id)
        self.repository.save(category)
        return category


class UpdateCategory:

    def __init__(self, repository: CategoryRepository):
        self.repository = repository

    async def execute(self, user_id: str, category_id: str, name: str) -> Category:
        category = self.repository.search(category_id)
        if category is None:
            raise CategoryDoesNotExistError(category_id)
        ensure_owned_by(category, user_id, "Category")

        category.rename(name)
        self.repository.save(category)
        return category


class DeleteCategory:
    """Delete a category; transactions keep their (now dangling) category_id"""

    def __init__(self, repository: CategoryRepository):
        self.repository = repository

    async def execute(self, user_id: str, category_id: str) -> None:
        category = self.repository.search(category_id)
        if category is None:
            raise CategoryDoesNotExistError(category_id)
        ensure_owned_by(category, user_id, "Category")

        self.repository.delete(category.id)


class SearchCategoriesByUser:

    def __init__(self, repository: CategoryRepository):
        self.repository = repository

    async def execute(self, user_id: str) -> List[Dict[str, Any]]:
        return [c.to_primitives() for c in self.repository.search_by_user_id(user_id)]
