"""
Completion API Router

Ollama-compatible endpoints backed by the Anthropic relay:
``/generate`` (NDJSON stream), ``/tags`` (model list), ``/show`` (model card).
"""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from notetree.core.security import get_current_user
from notetree.schemas.completions import GenerateRequest, ModelCard, ModelList
from notetree.services.completions import CompletionRelay, get_completion_relay

router = APIRouter()


@router.post("/generate", dependencies=[Depends(get_current_user)])
async def generate(
    request: GenerateRequest,
    relay: CompletionRelay = Depends(get_completion_relay),
):
    """
    Stream a completion as newline-delimited JSON chunks.

    Raises:
        HTTPException 400: If the model is not allowed.
    """
    relay.check_model(request.model)
    return StreamingResponse(
        relay.stream(request),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/tags", response_model=ModelList)
async def list_models(relay: CompletionRelay = Depends(get_completion_relay)):
    return relay.list_models()


@router.post("/show", response_model=ModelCard)
async def show_model(relay: CompletionRelay = Depends(get_completion_relay)):
    return relay.show_model()
