"""Per-collection field schemas.

Records carry backend-defined field maps. The registry turns a collection
name into an explicit pydantic model so readers get a typed contract;
collections without a registered model stay open maps.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, ValidationError

from kontext.domain.entities.record import Record
from kontext.domain.exceptions import KontextException

PORTFOLIO_COLLECTION = "Portfolio_Projects"
HOMEPAGE_COLLECTION = "Homepage"
USERS_COLLECTION = "users"


class CollectionFields(BaseModel):
    """Base for collection field models. Unknown backend fields are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class PortfolioProjectFields(CollectionFields):
    Title: str = ""
    Description: str = ""
    Order: int = 0
    Images: list[str] = []


class HomepageFields(CollectionFields):
    Hero_Title: str = ""
    Hero_Image: str = ""


class UserFields(CollectionFields):
    email: str = ""
    name: str = ""
    username: str = ""
    verified: bool = False
    avatar: str = ""


class RecordSchemaError(KontextException):
    """Raised when a record's fields do not match its collection model."""

    def __init__(self, collection: str, errors: list) -> None:
        super().__init__(
            f"Record does not match schema for {collection}",
            "SCHEMA_VALIDATION_ERROR",
            {"collection": collection, "errors": errors},
        )


class CollectionRegistry:
    """Collection name -> field model lookup."""

    def __init__(self, models: dict[str, type[CollectionFields]] | None = None) -> None:
        self._models: dict[str, type[CollectionFields]] = dict(models or {})

    def register(self, collection: str, model: type[CollectionFields]) -> None:
        self._models[collection] = model

    def model_for(self, collection: str) -> type[CollectionFields] | None:
        return self._models.get(collection)

    def parse(self, record: Record) -> CollectionFields | dict:
        """Validate a record's fields against its collection model.

        Args:
            record: Record snapshot.

        Returns:
            Typed model instance, or a plain dict when the collection has no model.

        Raises:
            RecordSchemaError: If the fields do not validate.
        """
        model = self._models.get(record.collection_name)
        if model is None:
            return dict(record.fields)
        try:
            return model.model_validate(dict(record.fields))
        except ValidationError as e:
            raise RecordSchemaError(record.collection_name, e.errors()) from e


def default_registry() -> CollectionRegistry:
    """Registry with the site's known collections."""
    return CollectionRegistry(
        {
            PORTFOLIO_COLLECTION: PortfolioProjectFields,
            HOMEPAGE_COLLECTION: HomepageFields,
            USERS_COLLECTION: UserFields,
        }
    )
