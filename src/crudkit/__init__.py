"""
crudkit: a generic, paginated CRUD repository layer over SQLAlchemy.

    from crudkit.repositories import Repository
    from crudkit.pagination import PaginationRequest
    from crudkit.models import User, USER_COLUMN_POLICY
"""
