import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from taketwo.config import settings
from taketwo.db import SessionLocal
from taketwo.errors import NotFoundError, TransportError, ValidationError
from taketwo.routers import auth, entries, reports, uploads
from taketwo.security.headers import install_security_headers
from taketwo.security.sessions import install_auth_session_middleware

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger('taketwo')

app = FastAPI(title='TakeTwo Operations Dashboard')
app.state.session_factory = SessionLocal

install_security_headers(app)
install_auth_session_middleware(app)

app.include_router(auth.router)
app.include_router(entries.router)
app.include_router(uploads.router)
app.include_router(reports.router)

app.mount(
    settings.upload_url_prefix.rstrip('/'),
    StaticFiles(directory=settings.upload_dir, check_dir=False),
    name='uploads',
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info('Rejected %s %s: %s', request.method, request.url.path, exc)
    return JSONResponse(status_code=422, content={'kind': exc.kind, 'violations': exc.violations})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={'detail': str(exc), 'where': exc.where})


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    logger.warning('Upstream call failed for %s %s: %s', request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={'detail': str(exc), 'upstreamStatus': exc.status})


@app.get('/robots.txt', response_class=PlainTextResponse)
def robots_txt() -> str:
    return 'User-agent: *\nDisallow: /\n'
