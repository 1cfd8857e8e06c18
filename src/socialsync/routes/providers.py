"""
Pass-through operations for the LLM, media and publishing providers.
"""

import base64
import json
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter

from socialsync.concurrency import fan_out
from socialsync.errors import GatewayError
from socialsync.models import (
    EmbedRequest,
    GeminiGenerateRequest,
    GeminiImageRequest,
    GenerateRequest,
    PublishRequest,
    UploadRequest,
)
from socialsync.operations import OperationContext, operation
from socialsync.upstreams import cloudinary_proxy, facebook_proxy, gemini_proxy, openrouter_proxy

router = APIRouter(prefix="/api")


@operation(
    router,
    "/gemini/embed",
    method="POST",
    action="generate embeddings with Gemini",
    input_model=EmbedRequest,
)
async def gemini_embed(ctx: OperationContext, payload: EmbedRequest):
    proxy = gemini_proxy(ctx.config)
    model = ctx.config.gemini.embedding_model

    async def embed_one(item: Tuple[str, str]):
        text, task_type = item
        response = await proxy.send(
            "POST",
            f"models/{model}:embedContent",
            body={
                "model": f"models/{model}",
                "content": {"parts": [{"text": text}]},
                "taskType": task_type,
            },
        )
        return response.body["embedding"]["values"]

    async with proxy.session():
        embeddings = await fan_out(embed_one, zip(payload.texts, payload.task_types))
    return {"embeddings": embeddings}


def gemini_model_path(model: str, method: str) -> str:
    name = model if model.startswith(("models/", "tunedModels/")) else f"models/{model}"
    return f"{name}:{method}"


def as_content(instruction: Any) -> Dict[str, Any]:
    if isinstance(instruction, str):
        return {"role": "system", "parts": [{"text": instruction}]}
    return instruction


@operation(
    router,
    "/gemini/generate",
    method="POST",
    action="generate content from Gemini API",
    input_model=GeminiGenerateRequest,
)
async def gemini_generate(ctx: OperationContext, payload: GeminiGenerateRequest):
    proxy = gemini_proxy(ctx.config)
    system_instruction, generation_config = payload.split_config()

    # The client sends structured contents; the model sees them as one JSON prompt
    prompt = json.dumps(payload.contents, separators=(",", ":"), ensure_ascii=False)
    body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
    if system_instruction:
        body["systemInstruction"] = as_content(system_instruction)
    if generation_config:
        body["generationConfig"] = generation_config

    response = await proxy.send(
        "POST", gemini_model_path(payload.model, "generateContent"), body=body
    )

    candidates = (response.body or {}).get("candidates") or []
    if not candidates:
        raise GatewayError("Gemini API returned no candidates")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return {"text": "".join(part.get("text", "") for part in parts)}


@operation(
    router,
    "/gemini/generate-image",
    method="POST",
    action="generate image from Gemini API",
    input_model=GeminiImageRequest,
)
async def gemini_generate_image(ctx: OperationContext, payload: GeminiImageRequest):
    proxy = gemini_proxy(ctx.config)
    # Image models take no system instruction
    _, parameters = payload.split_config()
    if "numberOfImages" in parameters:
        parameters["sampleCount"] = parameters.pop("numberOfImages")

    body = {"instances": [{"prompt": payload.prompt}]}
    if parameters:
        body["parameters"] = parameters

    response = await proxy.send("POST", gemini_model_path(payload.model, "predict"), body=body)

    predictions = (response.body or {}).get("predictions") or []
    image_bytes = predictions[0].get("bytesBase64Encoded") if predictions else None
    if not image_bytes:
        raise GatewayError("No image was generated")
    return {"image": f"data:image/jpeg;base64,{image_bytes}"}


@operation(
    router,
    "/openrouter/generate",
    method="POST",
    action="generate content from OpenRouter API",
    input_model=GenerateRequest,
)
async def openrouter_generate(ctx: OperationContext, payload: GenerateRequest):
    return {"text": await openrouter_completion(ctx, payload)}


@operation(
    router,
    "/openrouter/generate-image",
    method="POST",
    action="generate image from OpenRouter API",
    input_model=GenerateRequest,
)
async def openrouter_generate_image(ctx: OperationContext, payload: GenerateRequest):
    content = await openrouter_completion(ctx, payload)
    if not isinstance(content, str):
        return {"image": content}

    try:
        parsed = json.loads(content)
    except ValueError:
        return {"image": content}
    if isinstance(parsed, dict) and parsed.get("b64_json"):
        return {"image": f"data:image/jpeg;base64,{parsed['b64_json']}"}
    return {"image": content}


async def openrouter_completion(ctx: OperationContext, payload: GenerateRequest) -> Any:
    """Content of the first choice of a chat completion, or ``""``."""
    proxy = openrouter_proxy(ctx.config, referer=ctx.request.headers.get("referer"))

    body = {"model": payload.model, "messages": payload.messages}
    if payload.response_format:
        body["response_format"] = payload.response_format

    response = await proxy.send("POST", "chat/completions", body=body)

    choices = (response.body or {}).get("choices") or []
    if not choices:
        return ""
    return (choices[0].get("message") or {}).get("content") or ""


def decode_data_url(url: str) -> Tuple[str, bytes]:
    """Split ``data:<mime>;base64,<payload>`` into mime type and bytes."""
    header, sep, encoded = url.partition(",")
    if not sep:
        raise ValueError("Invalid data URL format")
    mime_type = header[len("data:") :].split(";")[0]
    if not mime_type:
        mime_type = "video/mp4" if url.startswith("data:video") else "image/jpeg"
    data = base64.b64decode("".join(encoded.split()), validate=True)
    return mime_type, data


@operation(
    router,
    "/cloudinary/upload",
    method="POST",
    action="upload media to Cloudinary",
    input_model=UploadRequest,
)
async def cloudinary_upload(ctx: OperationContext, payload: UploadRequest):
    entries = [(key, url) for key, url in payload.media.items() if url and url.startswith("data:")]
    if not entries:
        return {"uploadedUrls": {}}

    proxy = cloudinary_proxy(ctx.config)
    upload_preset = ctx.config.cloudinary.upload_preset

    async def upload_one(entry: Tuple[str, str]) -> Optional[Tuple[str, str]]:
        key, url = entry
        try:
            mime_type, data = decode_data_url(url)
            resource_type = "video" if mime_type.startswith("video") else "image"
            extension = mime_type.split("/")[-1] or "jpg"
            response = await proxy.send(
                "POST",
                f"{resource_type}/upload",
                files={"file": (f"{key}.{extension}", data, mime_type)},
                data={"upload_preset": upload_preset, "public_id": key},
            )
            return key, response.body["secure_url"]
        except (GatewayError, ValueError, KeyError, TypeError) as e:
            # One bad item must not sink the whole upload
            ctx.logger.warning(
                f'Failed to upload media with key "{key}" to Cloudinary: {e}',
                operation="cloudinary_upload",
            )
            return None

    async with proxy.session():
        results = await fan_out(upload_one, entries)
    return {"uploadedUrls": dict(result for result in results if result is not None)}


@operation(
    router,
    "/facebook/publish",
    method="POST",
    action="publish to Facebook",
    input_model=PublishRequest,
)
async def facebook_publish(ctx: OperationContext, payload: PublishRequest):
    proxy = facebook_proxy(ctx.config)
    message = payload.post.as_message()

    params = {"access_token": payload.access_token}
    if payload.image_url:
        path = f"{payload.page_id}/photos"
        params["caption"] = message
        params["url"] = payload.image_url
    else:
        path = f"{payload.page_id}/feed"
        params["message"] = message

    response = await proxy.send("POST", path, params=params)

    body = response.body or {}
    post_id = body.get("id") or body.get("post_id")
    if not post_id:
        raise GatewayError("Facebook API did not return a post ID")
    return {"publishedUrl": f"https://www.facebook.com/{post_id}"}

