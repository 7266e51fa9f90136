"""Collection reader API schemas."""

from pydantic import BaseModel, Field


class HomepageResponse(BaseModel):
    """Projection of the Homepage record served at GET /homepage."""

    id: str
    title: str
    image: str | list[str]
    imageUrl: str = Field(..., description="File proxy URL of the hero image")
