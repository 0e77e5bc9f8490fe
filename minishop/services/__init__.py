# Services package.
#
# Each module encapsulates the business rules for one aggregate:
#
#   product_service   ProductService, paged reads, filters, validated writes
#   category_service  CategoryService, list / detail / create / cascading delete
#   account_service   registration and login (token issuance)
#
# Services receive repositories bound to the request's AsyncSession, so
# the router layer still owns the session lifetime via ``get_db``.
