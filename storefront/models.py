"""
Data models for the storefront service.

Pydantic models for the payloads exchanged with the product catalog and the
store creation APIs. The shapes are owned by those APIs; unknown fields are
ignored so upstream additions do not break rendering.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MediaAsset(BaseModel):
    """An uploaded image or video reference."""

    model_config = ConfigDict(extra="ignore")

    secure_url: Optional[str] = None
    public_id: Optional[str] = None


class ProductCategory(BaseModel):
    """Category a product is filed under."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None


class Product(BaseModel):
    """
    A product record as returned by the catalog API.

    Attributes:
        id: Catalog identifier (``_id`` upstream)
        name: Product name
        description: Free-text description
        price: Unit price in the store currency
        images: Uploaded product images, first one is the cover
        video: Optional product video
        category: Optional category
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(alias="_id", min_length=1)
    name: str = ""
    description: str = ""
    price: Optional[float] = None
    images: List[MediaAsset] = Field(default_factory=list)
    video: Optional[MediaAsset] = None
    category: Optional[ProductCategory] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("images", mode="before")
    @classmethod
    def drop_empty_images(cls, value: Any) -> Any:
        if value is None:
            return []
        return [image for image in value if image]

    @field_validator("category", mode="before")
    @classmethod
    def category_object_only(cls, value: Any) -> Any:
        # Unpopulated references arrive as a bare id string
        return value if isinstance(value, dict) else None

    @property
    def cover_image_url(self) -> Optional[str]:
        """URL of the first image, if the product has one."""
        for image in self.images:
            if image.secure_url:
                return image.secure_url
        return None

    @property
    def video_url(self) -> Optional[str]:
        return self.video.secure_url if self.video else None

    @property
    def category_name(self) -> str:
        if self.category and self.category.name:
            return self.category.name
        return "Category"

    @property
    def display_price(self) -> str:
        """Price formatted for display, whole amounts without decimals."""
        if self.price is None:
            return "N/A"
        if float(self.price).is_integer():
            return f"{int(self.price):,}"
        return f"{self.price:,.2f}"


class ProductEnvelope(BaseModel):
    """Catalog response wrapper carrying products under ``data``."""

    model_config = ConfigDict(extra="ignore")

    data: List[Any]


class DomainCheckResult(BaseModel):
    """Outcome of a domain availability lookup."""

    domain: str
    taken: bool

    @classmethod
    def from_payload(cls, domain: str, payload: Any) -> "DomainCheckResult":
        """
        Parse a domain check response.

        The API has answered both with a flat ``{"taken": bool}`` and with
        ``{"data": {"taken": bool}}``; both are accepted.

        Raises:
            ValueError: If neither shape is present
        """
        if isinstance(payload, dict):
            if isinstance(payload.get("taken"), bool):
                return cls(domain=domain, taken=payload["taken"])
            nested = payload.get("data")
            if isinstance(nested, dict) and isinstance(nested.get("taken"), bool):
                return cls(domain=domain, taken=nested["taken"])
        raise ValueError("domain check response carries no 'taken' flag")


class StoreCreateRequest(BaseModel):
    """Body of the store creation request."""

    name: str = Field(..., min_length=3)
    currency: str
    country: str
    domain: str = Field(..., min_length=1)
    category: str
    email: str = Field(..., min_length=3)
