"""
A compatibility proxy for clients that request secrets with POST requests.

The legacy protocol has two resources:

    POST /secret   {"path": ..., "username": ...}  ->  GET <target><path>/<username>.asc
    POST /secrets  (body ignored)                  ->  GET <target>index.asc

Both also accept a trailing path segment ('/secret/...', '/secrets/...'), and
both require an application/json request body. Successful responses are
returned as {"response": "<file contents>"}.
"""

import http
import http.cookiejar
import logging
import re
import typing

import requests
from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import ProxyConfig
from .site import INDEX

log = logging.getLogger(__name__)

JSON = 'application/json'

TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"

MEDIA_TYPE = re.compile(rf"^{TOKEN}/{TOKEN}$")

PARAMETER = re.compile(rf'\s*;\s*{TOKEN}\s*=\s*(?:{TOKEN}|"(?:[^"\\]|\\.)*")\s*')


class SecretRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    path: str
    username: str

    @property
    def location(self) -> str:
        return f'{self.path}/{self.username}.asc'


def media_type(content_type: typing.Optional[str]) -> str:
    """
    Parse the media type of a Content-Type header.

    Parameters must be well formed but are otherwise ignored. A trailing
    semicolon is allowed.
    """
    value, semicolon, parameters = (content_type or '').partition(';')
    value = value.strip().lower()
    if not MEDIA_TYPE.match(value):
        raise ValueError(f"invalid media type {content_type!r}")

    rest, position = semicolon + parameters, 0
    while rest[position:].strip():
        match = PARAMETER.match(rest, position)
        if match is None:
            if rest[position:].strip() == ';':
                break
            raise ValueError(f"invalid media parameter in {content_type!r}")
        position = match.end()

    return value


def status_text(code: int, default: str = '') -> str:
    try:
        return http.HTTPStatus(code).phrase
    except ValueError:
        return default


def text_error(message: str, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status_code)


def new_session() -> requests.Session:
    """A session that pools connections but never stores cookies."""
    session = requests.Session()
    session.cookies.set_policy(http.cookiejar.DefaultCookiePolicy(allowed_domains=[]))
    return session


class Upstream:
    """Fetches files from the web server serving the pass-indexer output."""

    def __init__(self, config: ProxyConfig, session: typing.Optional[requests.Session] = None):
        self.config = config
        self.session = session or new_session()

    def url(self, location: str) -> str:
        return self.config.target + location

    def fetch(self, location: str) -> Response:
        url = self.url(location)
        log.debug(f"Fetching {url}")

        try:
            response = self.session.get(url, timeout=self.config.timeout, stream=True)
        except requests.RequestException as error:
            log.warning(f"Request for {url} failed: {error}")
            return text_error(str(error), 400)

        with response:
            if response.status_code >= 400:
                log.debug(f"Upstream returned {response.status_code} for {url}")
                return text_error(
                    status_text(response.status_code, response.reason),
                    response.status_code)

            if response.status_code != 200:
                log.warning(f"Unexpected status {response.status_code} for {url}")
                return text_error(f'{response.status_code} {response.reason}', 502)

            try:
                body = response.content
            except requests.RequestException as error:
                log.warning(f"Reading {url} failed: {error}")
                return text_error(str(error), 500)

        return JSONResponse({'response': body.decode('utf-8', 'replace')})


def get_upstream(request: Request) -> Upstream:
    return request.app.state.upstream


def require_json(content_type: typing.Optional[str] = Header(None)) -> None:
    try:
        value = media_type(content_type)
    except ValueError as error:
        raise HTTPException(status_code=400, detail=str(error))
    if value != JSON:
        raise HTTPException(status_code=400, detail="bad content type")


router = APIRouter(dependencies=[Depends(require_json)])


@router.post('/secret')
@router.post('/secret/{rest:path}')
async def secret(request: Request, upstream: Upstream = Depends(get_upstream)) -> Response:
    try:
        body = SecretRequest.model_validate_json(await request.body())
    except ValidationError as error:
        raise HTTPException(status_code=400, detail=str(error))
    return await run_in_threadpool(upstream.fetch, body.location)


@router.post('/secrets')
@router.post('/secrets/{rest:path}')
async def index(upstream: Upstream = Depends(get_upstream)) -> Response:
    return await run_in_threadpool(upstream.fetch, INDEX)


async def http_error(request: Request, error: StarletteHTTPException) -> Response:
    return PlainTextResponse(
        str(error.detail),
        status_code=error.status_code,
        headers=getattr(error, 'headers', None))


def create_app(
        config: ProxyConfig,
        session: typing.Optional[requests.Session] = None) -> FastAPI:
    app = FastAPI(
        title="pass-proxy",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None)
    app.state.upstream = Upstream(config, session)
    app.add_exception_handler(StarletteHTTPException, http_error)
    app.include_router(router)
    return app
