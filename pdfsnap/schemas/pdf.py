import json
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pdfsnap.utils.color import BLACK, Color


class VariableBase(BaseModel):
    """Geometry in points with y measured from the top of the page."""
    x: float
    y: float
    w: float = Field(gt=0)
    h: float = Field(gt=0)
    page: int = Field(0, ge=0)
    field: str = ""
    value: str = ""


class _StyledVariable(VariableBase):
    font_size: Optional[float] = Field(None, gt=0)
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return Color.from_hex(v).to_hex()

    @property
    def rgb(self) -> Color:
        return Color.from_hex(self.color) if self.color else BLACK


class TextVariable(_StyledVariable):
    type: Literal["text"] = "text"
    align_h: Literal["left", "center", "right"] = "left"
    align_v: Literal["top", "middle", "bottom"] = "top"
    wrap: bool = True


class SignatureVariable(_StyledVariable):
    type: Literal["signature"] = "signature"
    align_v: Literal["top", "middle", "bottom"] = "bottom"


class ImageVariable(VariableBase):
    type: Literal["image"] = "image"


PdfVariable = Annotated[
    Union[TextVariable, SignatureVariable, ImageVariable],
    Field(discriminator="type"),
]


def variables_json(variables: List[PdfVariable]) -> str:
    """Canonical JSON of the variable list, used for the form schema hash."""
    return json.dumps(
        [v.model_dump(mode="json") for v in variables],
        separators=(",", ":"),
        sort_keys=True,
    )


class GeneratePdfRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    template_url: str = Field(alias="templateUrl")
    variables: List[PdfVariable] = []
    include_hash_in_header: bool = Field(False, alias="includeHashInHeader")
    store_output: bool = Field(False, alias="storeOutput")


class GeneratePdfResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    template_name: str = Field(alias="templateName")
    template_hash: str = Field(alias="templateHash")
    form_schema_hash: str = Field(alias="formSchemaHash")
    download_link: Optional[str] = Field(None, alias="downloadLink")
    error: Optional[str] = None
