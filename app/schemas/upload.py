from sqlmodel import SQLModel

from app.schemas.category import AssetRef


class UploadResponse(SQLModel):
    success: bool = True
    data: AssetRef


class UploadListResponse(SQLModel):
    success: bool = True
    count: int
    data: list[AssetRef]
