from image_inspector.schemas.common import ErrorResponse
from image_inspector.schemas.image import HtmlInspectRequest, ImageReport, ResolvedImageRecord

__all__ = ["ErrorResponse", "HtmlInspectRequest", "ImageReport", "ResolvedImageRecord"]
