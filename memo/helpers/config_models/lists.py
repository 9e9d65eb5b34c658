from pydantic import BaseModel, Field


class ListsModel(BaseModel):
    default_name: str = Field(default="Reminders", min_length=1)
    """Name of the list created when the collection is empty, it cannot be deleted while other lists exist."""
