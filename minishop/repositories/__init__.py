# Repositories package.
#
# ``base.Repository`` implements paging, counting, existence checks and
# staged writes once; the specialised repositories add filters only:
#
#   products     category / price range / name search
#   categories   lookup by name, detail with products
#   users        identity lookups and role names for token issuance
from minishop.repositories.base import Repository
from minishop.repositories.categories import CategoryRepository
from minishop.repositories.products import ProductRepository
from minishop.repositories.users import UserRepository

__all__ = ["Repository", "CategoryRepository", "ProductRepository", "UserRepository"]
