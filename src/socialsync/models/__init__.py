from .gateway import ErrorResponse, RequestDescriptor, UpstreamResponse
from .operations import (
    BrandInfo,
    EmbedRequest,
    GeminiGenerateRequest,
    GeminiImageRequest,
    GenerateRequest,
    Idea,
    PostContent,
    PublishRequest,
    SaveBrandRequest,
    SaveIdeasRequest,
    UploadRequest,
)

__all__ = [
    "ErrorResponse",
    "RequestDescriptor",
    "UpstreamResponse",
    "BrandInfo",
    "EmbedRequest",
    "GeminiGenerateRequest",
    "GeminiImageRequest",
    "GenerateRequest",
    "Idea",
    "PostContent",
    "PublishRequest",
    "SaveBrandRequest",
    "SaveIdeasRequest",
    "UploadRequest",
]
