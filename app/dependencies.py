from fastapi import Request

from app.services.auth_service import AuthService
from app.services.catalog_service import CatalogService
from app.services.upload_service import UploadService


# Services are built once in create_app() and kept on app.state.


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service
