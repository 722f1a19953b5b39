"""Proxy service: forwards a photo to the vision provider with the server-side key."""

import base64
import binascii
import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from pokiface.ai.analyzer_base import BaseMatchAnalyzer
from pokiface.ai.factory import get_match_analyzer
from pokiface.ai.schema import UploadedImage
from pokiface.core.config import get_config
from pokiface.core.errors import PokifaceError
from pokiface.core.uploads import strip_data_url_prefix

_log = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Please pass an image and mimeType in the request body"


@lru_cache(maxsize=1)
def _get_analyzer() -> BaseMatchAnalyzer:
    """The proxy always talks to Azure; the key comes from AZURE_OPENAI_API_KEY via Settings."""
    return get_match_analyzer("azure", get_config())


app = FastAPI(title="PokiFace Proxy")


@app.exception_handler(RequestValidationError)
async def _bad_body(request: Request, exc: RequestValidationError) -> PlainTextResponse:
    return PlainTextResponse(MISSING_FIELDS_MESSAGE, status_code=400)


class TwinRequestIn(BaseModel):
    image: str | None = None
    mimeType: str | None = None


class TwinResultOut(BaseModel):
    pokemon_name: str
    description: str


@app.post("/api/getPokemonTwin", response_model=TwinResultOut)
def api_get_pokemon_twin(
    body: TwinRequestIn,
    analyzer: BaseMatchAnalyzer = Depends(_get_analyzer),
):
    """Analyze a base64 photo and return {pokemon_name, description}."""
    if not body.image or not body.mimeType:
        return PlainTextResponse(MISSING_FIELDS_MESSAGE, status_code=400)
    try:
        data = base64.b64decode(strip_data_url_prefix(body.image), validate=True)
    except (binascii.Error, ValueError):
        return PlainTextResponse("image must be a base64 string", status_code=400)

    image = UploadedImage(filename="upload", mime_type=body.mimeType, data=data)
    try:
        result = analyzer.analyze(image)
    except PokifaceError as e:
        _log.error("Error calling AI service: %s", e.message)
        return PlainTextResponse(f"Error calling AI service: {e.message}", status_code=500)
    return JSONResponse(content=result.to_wire())
