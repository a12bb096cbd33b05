"""Schema for the post-clone directives manifest."""

from __future__ import annotations

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class CloneDirective(BaseModel):
    """Fetch another repository into the same destination."""

    action: Literal["clone"] = "clone"
    src: str
    cache: bool = False
    verbose: bool = False


class RemoveDirective(BaseModel):
    """Remove files or directories, relative to the destination."""

    action: Literal["remove"] = "remove"
    files: List[str]

    @field_validator("files", mode="before")
    @classmethod
    def _wrap_single_file(cls, value: object) -> object:
        if isinstance(value, str):
            return [value]
        return value


Directive = Annotated[Union[CloneDirective, RemoveDirective], Field(discriminator="action")]

DirectiveList: TypeAdapter[List[Directive]] = TypeAdapter(List[Directive])
