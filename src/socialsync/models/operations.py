"""
Input models for the ingress operations.

Field aliases follow the browser client's camelCase payloads.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Idea(BaseModel):
    text: str
    brand_airtable_id: Optional[str] = Field(default=None, alias="brandAirtableId")

    model_config = ConfigDict(populate_by_name=True)


class SaveIdeasRequest(BaseModel):
    ideas: List[Idea] = Field(..., min_length=1, description="Ideas to create, in order")


class BrandInfo(BaseModel):
    brand_name: Optional[str] = Field(default=None, alias="brandName")
    mission: Optional[str] = None
    usp: Optional[str] = None
    target_audience: Optional[str] = Field(default=None, alias="targetAudience")
    personality: Any = None

    model_config = ConfigDict(populate_by_name=True)


class SaveBrandRequest(BaseModel):
    brand_info: BrandInfo = Field(..., alias="brandInfo")
    color_palette: Any = Field(default=None, alias="colorPalette")
    font_recommendations: Any = Field(default=None, alias="fontRecommendations")
    unified_profile: Any = Field(default=None, alias="unifiedProfile")
    brand_id: Optional[str] = Field(default=None, alias="brandId")

    model_config = ConfigDict(populate_by_name=True)

    def as_fields(self) -> Dict[str, Any]:
        """Airtable ``Brands`` row; structured values are stored as JSON text."""
        fields = {
            "brand_id": self.brand_id,
            "name": self.brand_info.brand_name,
            "mission": self.brand_info.mission,
            "usp": self.brand_info.usp,
            "target_audience": self.brand_info.target_audience,
            "personality": self.brand_info.personality,
        }
        for column, value in (
            ("color_palette_json", self.color_palette),
            ("font_recs_json", self.font_recommendations),
            ("unified_profile_json", self.unified_profile),
        ):
            if value is not None:
                fields[column] = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        return {key: value for key, value in fields.items() if value is not None}


class EmbedRequest(BaseModel):
    texts: List[str]
    task_types: List[str] = Field(..., alias="taskTypes")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_parallel_lengths(self):
        if len(self.texts) != len(self.task_types):
            raise ValueError("texts and taskTypes must be arrays of the same length")
        return self


class GenerateRequest(BaseModel):
    model: str = Field(..., min_length=1)
    messages: List[Dict[str, Any]] = Field(..., min_length=1)
    response_format: Optional[Dict[str, Any]] = Field(default=None, alias="responseFormat")

    model_config = ConfigDict(populate_by_name=True)


class GeminiModelRequest(BaseModel):
    model: Optional[str] = None
    config: Optional[Dict[str, Any]] = None

    def split_config(self) -> Tuple[Any, Dict[str, Any]]:
        """Separate ``systemInstruction`` from the rest of the generation config."""
        generation_config = dict(self.config or {})
        return generation_config.pop("systemInstruction", None), generation_config


class GeminiGenerateRequest(GeminiModelRequest):
    contents: Any = None

    @model_validator(mode="after")
    def check_required(self):
        if not self.model or self.contents is None or self.contents == "":
            raise ValueError("Missing required fields: model and contents")
        return self


class GeminiImageRequest(GeminiModelRequest):
    prompt: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if not self.model or not self.prompt:
            raise ValueError("Missing required fields: model and prompt")
        return self


class UploadRequest(BaseModel):
    # Values that are not data URLs are already hosted and are skipped.
    media: Dict[str, Optional[str]]


class PostContent(BaseModel):
    title: str = ""
    content: str = ""
    hashtags: List[str] = Field(default_factory=list)
    cta: str = ""

    def as_message(self) -> str:
        return f"{self.title}\n\n{self.content}\n\n{' '.join(self.hashtags)}\n\nCTA: {self.cta}"


class PublishRequest(BaseModel):
    post: PostContent
    page_id: str = Field(..., alias="pageId", min_length=1)
    access_token: str = Field(..., alias="accessToken", min_length=1)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    # Accepted for client compatibility; video posts are not published.
    video_url: Optional[str] = Field(default=None, alias="videoUrl")

    model_config = ConfigDict(populate_by_name=True)
