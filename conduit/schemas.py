from pydantic import BaseModel, ConfigDict, Field


# --- User ---

class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=255)
    bio: str | None = None
    image: str | None = Field(None, max_length=500)


# --- Comment ---

class CommentCreate(BaseModel):
    body: str = Field(min_length=1)


# --- Article ---
#
# Emptiness of title/description/body is checked by the service so the
# error names every missing field; these models only describe the shape.

class ArticleCreate(BaseModel):
    title: str = ""
    description: str = ""
    body: str = ""
    # Either "a, b, c" or ["a", "b", "c"]
    tag_list: list[str] | str | None = Field(None, alias="tagList")

    model_config = ConfigDict(populate_by_name=True)


class ArticleUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    body: str | None = None
    tag_list: list[str] | str | None = Field(None, alias="tagList")

    model_config = ConfigDict(populate_by_name=True)


# --- Tag ---

class TagListResponse(BaseModel):
    tags: list[str]
