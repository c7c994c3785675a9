from .base import AppBaseModel
from .pagination import PaginatedResponse
