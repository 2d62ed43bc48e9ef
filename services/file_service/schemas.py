from typing import List

from pydantic import BaseModel, ConfigDict, Field


class FileView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    tags: List[str] = []
    url: str
    thumb_url: str = Field("", alias="thumbUrl")
    order_no: str = Field(alias="orderNo")
    size: int = 0
    create_time: str = Field(alias="createTime")
    update_time: str = Field(alias="updateTime")


class FileListResponse(BaseModel):
    files: List[FileView] = []


class FileUpdateResponse(BaseModel):
    file: FileView
