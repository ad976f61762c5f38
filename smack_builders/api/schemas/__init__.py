"""Request / response schemas."""
from .builds import BuildRequest
from .envelope import ApiResponse, ResponseMeta

__all__ = ["ApiResponse", "BuildRequest", "ResponseMeta"]
