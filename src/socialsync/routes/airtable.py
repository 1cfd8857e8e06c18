from fastapi import APIRouter

from socialsync.batching import batch_create
from socialsync.errors import GatewayError, PartialBatchError, UpstreamError
from socialsync.gateway import AirtableGateway
from socialsync.models import RequestDescriptor, SaveBrandRequest, SaveIdeasRequest
from socialsync.operations import OperationContext, operation

router = APIRouter(prefix="/api/airtable")

BRANDS_TABLE = "Brands"
IDEAS_TABLE = "Ideas"


@operation(
    router,
    "/request",
    method="POST",
    action="communicate with Airtable",
    input_model=RequestDescriptor,
)
async def airtable_request(ctx: OperationContext, descriptor: RequestDescriptor):
    """Generic proxy: the upstream body is returned as-is."""
    gateway = AirtableGateway(ctx.config.airtable)
    return await gateway.dispatch(descriptor)


@operation(router, "/check-credentials", method="GET", action="check Airtable credentials")
async def check_credentials(ctx: OperationContext):
    if ctx.config.airtable.credentials() is None:
        return {"valid": False}

    gateway = AirtableGateway(ctx.config.airtable)
    try:
        # Cheapest call that needs both the token and the base id
        await gateway.request("GET", "meta/bases/tables")
    except GatewayError as e:
        ctx.logger.warning(f"Airtable credential check failed: {e}", operation="check_credentials")
        return {"valid": False}
    return {"valid": True}


@operation(router, "/list-brands", method="GET", action="fetch brands from Airtable")
async def list_brands(ctx: OperationContext):
    gateway = AirtableGateway(ctx.config.airtable)
    try:
        response = await gateway.request("GET", BRANDS_TABLE)
    except UpstreamError as e:
        if "NOT_FOUND" in str(e):
            ctx.logger.warning(
                "Brands table not found in Airtable. Returning empty list.",
                operation="list_brands",
            )
            return {"brands": []}
        raise

    brands = [
        {
            "id": record.get("fields", {}).get("brand_id"),
            "name": record.get("fields", {}).get("name"),
            "airtableId": record.get("id"),
        }
        for record in (response or {}).get("records", [])
    ]
    return {"brands": brands}


@operation(
    router,
    "/save-ideas",
    method="POST",
    action="save ideas",
    input_model=SaveIdeasRequest,
)
async def save_ideas(ctx: OperationContext, payload: SaveIdeasRequest):
    records = []
    for idea in payload.ideas:
        fields = {"Idea": idea.text, "Status": "New"}
        if idea.brand_airtable_id:
            fields["Brand"] = [idea.brand_airtable_id]
        records.append({"fields": fields})

    gateway = AirtableGateway(ctx.config.airtable)
    try:
        created_ids = await batch_create(
            gateway, IDEAS_TABLE, records, batch_size=ctx.config.airtable.batch_size
        )
    except PartialBatchError as e:
        ctx.logger.error(
            "Ideas partially saved; caller must reconcile",
            operation="save_ideas",
            metadata={"committed_ids": e.committed_ids, "failed_chunk": e.failed_chunk},
        )
        raise

    ctx.logger.info(f"--- {len(created_ids)} ideas saved ---", operation="save_ideas")
    return {"success": True, "createdIds": created_ids}


@operation(
    router,
    "/create-or-update-brand",
    method="POST",
    action="create or update brand record",
    input_model=SaveBrandRequest,
)
async def create_or_update_brand(ctx: OperationContext, payload: SaveBrandRequest):
    gateway = AirtableGateway(ctx.config.airtable)
    response = await gateway.request(
        "POST", BRANDS_TABLE, body={"records": [{"fields": payload.as_fields()}]}
    )

    records = (response or {}).get("records") or []
    if not records:
        raise GatewayError("Airtable API did not return the brand record")
    return {"brandId": records[0].get("fields", {}).get("brand_id")}
