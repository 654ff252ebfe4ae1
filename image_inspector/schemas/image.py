from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ResolvedImageRecord(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    locator: str = Field(min_length=1, description="图片地址（网络地址、data: 内嵌或 blob: 句柄）")
    preview_data: str | None = Field(
        default=None, description="内联缩略图（data: URL），无法生成时为空"
    )
    width: int = Field(default=0, ge=0, description="像素宽度，未知时为 0", examples=[800])
    height: int = Field(default=0, ge=0, description="像素高度，未知时为 0", examples=[600])
    format: str = Field(default="Unknown", min_length=1, description="图片格式", examples=["JPEG"])
    byte_size: int = Field(
        default=0, ge=0, description="字节大小（无法获取时按尺寸与格式估算）", examples=[192000]
    )

    @property
    def area(self) -> int:
        return self.width * self.height


class ImageReport(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    images: list[ResolvedImageRecord] = Field(description="按像素面积降序排列的图片记录")
    page_url: str = Field(description="解析时页面的地址", examples=["https://example.com/"])


class HtmlInspectRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    html: str = Field(description="待解析的 HTML 文本")
    base_url: str = Field(default="", description="用于解析相对地址的页面地址")
