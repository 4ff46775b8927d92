################################
# --- Parsed request model --- #
################################

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileRecord(BaseModel):
    """One uploaded file taken from a multipart body."""
    name: Optional[str] = Field(default=None, description="The form field name of the part.")
    filename: Optional[str] = Field(default=None, description="The client-side file name.")
    headers: Optional[Dict[str, str]] = Field(
        default=None,
        description="Part headers keyed by lower-cased name.",
        json_schema_extra={"example": {"content-type": "image/jpeg"}},
    )
    content: bytes = Field(default=b"", description="The raw file content.")

    model_config = ConfigDict(frozen=True)

    @property
    def content_type(self) -> Optional[str]:
        if self.headers is None:
            return None
        return self.headers.get("content-type")


class ParsedForm(BaseModel):
    """Form fields and files decoded from one request."""
    fields: Dict[str, str] = Field(default_factory=dict)
    files: List[FileRecord] = Field(default_factory=list)
