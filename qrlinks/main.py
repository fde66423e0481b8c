import logging

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from qrlinks import __version__, crud, database, models, schemas
from qrlinks.auth import get_current_user_id, require_owner
from qrlinks.codes import CodeGenerator
from qrlinks.config import settings
from qrlinks.errors import NotFound, QrLinksError, Unauthenticated
from qrlinks.qr_utils import QrStorage
from qrlinks.services import AuthService, LinkService, UserService

# --- Logging ---
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("qrlinks")

# --- DB tables ---
models.Base.metadata.create_all(bind=database.engine)

app = FastAPI(
    title="QR Links",
    description="Shorten URLs, get a QR code for every link, manage your own links.",
    version=__version__,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QrLinksError)
async def handle_qrlinks_error(request: Request, exc: QrLinksError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


# ---------- Dependencies ----------
def get_qr_storage() -> QrStorage:
    return QrStorage(settings.qr_storage_dir)

def get_link_service(request: Request, db=Depends(database.get_db), qr=Depends(get_qr_storage)) -> LinkService:
    base = settings.public_base_url or str(request.base_url).rstrip("/")
    return LinkService(
        crud.LinkRepository(db), qr, CodeGenerator(settings.code_length), base,
        max_attempts=settings.code_max_attempts,
    )

def get_user_service(db=Depends(database.get_db), qr=Depends(get_qr_storage)) -> UserService:
    return UserService(crud.UserRepository(db), qr)

def get_auth_service(db=Depends(database.get_db)) -> AuthService:
    return AuthService(crud.UserRepository(db))


# Health check (useful for uptime monitors & load balancers)
@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok", "env": settings.environment}

# Public redirect
@app.get("/r/{code}", include_in_schema=False)
def redirect(code: str, service: LinkService = Depends(get_link_service)):
    link = service.get_link(code)
    return RedirectResponse(url=link.original_url, status_code=307)


# ---------- Auth ----------
@app.post("/api/auth", response_model=schemas.Token)
def login(credentials: schemas.Credentials, service: AuthService = Depends(get_auth_service)):
    token = service.authenticate(credentials.email, credentials.password)
    return {"access_token": token, "token_type": "bearer"}

@app.get("/api/auth/me", response_model=schemas.UserOut)
def me(user_id: int = Depends(get_current_user_id), service: UserService = Depends(get_user_service)):
    return service.get_user(user_id)


# ---------- Links ----------
@app.get("/api/links", response_model=list[schemas.LinkOut])
def list_links(user_id: int = Depends(get_current_user_id), service: LinkService = Depends(get_link_service)):
    return service.get_links_of_user(user_id)

@app.get("/api/links/{code}", response_model=schemas.LinkDetail)
def get_link(code: str, user_id: int = Depends(get_current_user_id), service: LinkService = Depends(get_link_service)):
    link = service.get_link(code)
    require_owner(link.user_id, user_id)
    return service.with_qr_base64(link)

@app.post("/api/links", response_model=schemas.LinkOut, status_code=status.HTTP_201_CREATED)
def create_link(
    link_in: schemas.LinkCreate,
    user_id: int = Depends(get_current_user_id),
    service: LinkService = Depends(get_link_service),
):
    link = service.shorten_new_link(link_in.original_url, user_id, link_in.expires_at)
    logger.info("Created link %s -> %s by user=%s", link.shortened_code, link.original_url, user_id)
    return link

@app.put("/api/links/{code}", response_model=schemas.LinkOut)
def update_link(
    code: str,
    link_in: schemas.LinkUpdate,
    user_id: int = Depends(get_current_user_id),
    service: LinkService = Depends(get_link_service),
):
    require_owner(service.get_link(code).user_id, user_id)
    link = service.update_link(code, link_in.original_url, link_in.expires_at)
    logger.info("Updated link %s -> %s by user=%s", code, link.original_url, user_id)
    return link

@app.delete("/api/links/{code}", status_code=status.HTTP_204_NO_CONTENT)
def delete_link(code: str, user_id: int = Depends(get_current_user_id), service: LinkService = Depends(get_link_service)):
    require_owner(service.get_link(code).user_id, user_id)
    if not service.delete_link(code):
        raise NotFound("Link not found")
    logger.info("Deleted link %s by user=%s", code, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Users ----------
@app.post("/api/users", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def register(user_in: schemas.UserCreate, service: UserService = Depends(get_user_service)):
    user = service.register(user_in.email, user_in.password)
    logger.info("Registered user %s", user.user_id)
    return user

@app.get("/api/users/{target_id}", response_model=schemas.UserOut)
def get_user(target_id: int, user_id: int = Depends(get_current_user_id), service: UserService = Depends(get_user_service)):
    user = service.get_user(target_id)
    require_owner(user.user_id, user_id)
    return user

@app.put("/api/users/{target_id}", response_model=schemas.UserOut)
def update_user(
    target_id: int,
    user_in: schemas.UserUpdate,
    user_id: int = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
):
    require_owner(service.get_user(target_id).user_id, user_id)
    return service.update_user(target_id, user_in.email, user_in.password)

@app.delete("/api/users/{target_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(target_id: int, user_id: int = Depends(get_current_user_id), service: UserService = Depends(get_user_service)):
    require_owner(service.get_user(target_id).user_id, user_id)
    service.delete_user(target_id)
    logger.info("Deleted user %s", target_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
