from fastapi import APIRouter

from koperasi.api.v1.endpoints import document_numbers, documents

api_router = APIRouter()

# Document creation: every route issues its own number inside the insert transaction
api_router.include_router(documents.router, tags=["Documents"])
api_router.include_router(
    document_numbers.router,
    prefix="/document-numbers",
    tags=["System Settings - Document Numbers"],
)
