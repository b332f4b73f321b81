from .crud_service import CrudService

__all__ = ["CrudService"]
