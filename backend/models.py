from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator, model_serializer

ItemType = Literal["wine", "vinyl", "general"]
CollectorCategory = Literal["wine", "vinyl"]


class ProcessRequest(BaseModel):
    image_url: str | None = None
    user_id: str | None = None
    language: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_as_list(cls, value: Any) -> list[str]:
        # Anything that is not a list of tags counts as "no tags".
        if isinstance(value, (list, tuple)):
            return [v for v in value if isinstance(v, str)]
        return []


class ProcessSingleRequest(ProcessRequest):
    item_name: str | None = None


class CollectorDetails(BaseModel):
    winery: str | None = None
    vintage: int | None = None
    wine_name: str | None = None
    artist: str | None = None
    album: str | None = None
    release_year: int | None = None


class DetectedItem(BaseModel):
    name: str
    description: str
    estimated_value: float | None = None
    quantity: int = 1
    accuracy: float | None = None
    item_type: ItemType = "general"
    tags: list[str] = Field(default_factory=list)
    collector_details: CollectorDetails = Field(default_factory=CollectorDetails)


class WineData(BaseModel):
    provider: Literal["vivino"] = "vivino"
    vivino_url: str | None = None
    vivino_rating: float = 0
    vivino_reviews_count: int = 0
    winery: str = "Unknown"
    vintage: int | None = None
    wine_name: str = "Unknown"
    grape_variety: str = "Unknown"
    region: str = "Unknown"
    country: str = "Unknown"
    food_pairing: list[str] = Field(default_factory=list)
    wine_type: str = "Unknown"
    image_url: str | None = None
    price_estimate: float | None = None
    price_currency: str = "EUR"


class VinylData(BaseModel):
    provider: Literal["discogs"] = "discogs"
    discogs_url: str | None = None
    discogs_id: int | None = None
    artist: str = "Unknown"
    album: str = "Unknown"
    release_year: int | None = None
    label: str = "Unknown"
    catalog_number: str | None = None
    genres: list[str] = Field(default_factory=list)
    styles: list[str] = Field(default_factory=list)
    format: str = "Vinyl"
    country: str = "Unknown"
    tracklist_count: int = 0
    discogs_rating: float | None = None
    discogs_votes: int = 0
    discogs_have: int = 0
    discogs_want: int = 0
    image_url: str | None = None
    discogs_avg_price: float | None = None
    discogs_min_price: float | None = None
    discogs_max_price: float | None = None
    discogs_currency: str = "EUR"
    discogs_num_for_sale: int = 0


class EnrichedItem(DetectedItem):
    collector_category: CollectorCategory | None = None
    collector_data: Annotated[WineData | VinylData, Field(discriminator="provider")] | None = None
    collector_warning: str | None = None

    @model_serializer(mode="wrap")
    def _omit_empty_warning(self, handler):
        data = handler(self)
        if data.get("collector_warning") is None:
            data.pop("collector_warning", None)
        return data


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0


class CollectorStats(BaseModel):
    total_items: int = 0
    collector_items: int = 0
    wine_items: int = 0
    vinyl_items: int = 0
    general_items: int = 0
    enrichment_failures: int = 0


class ProcessResponse(BaseModel):
    version: str
    items: list[EnrichedItem]
    token_usage: TokenUsage
    warnings: list[str]
    processing_time: float
    user_id: str
    image_deleted: bool
    collector_stats: CollectorStats


class ProcessSingleResponse(BaseModel):
    version: str
    item: EnrichedItem
    token_usage: TokenUsage
    warnings: list[str]
    processing_time: float
    user_id: str
    image_deleted: bool
    searched_for: str | None = None


class ErrorResponse(BaseModel):
    version: str
    error: str
    details: str | None = None
    processing_time: float | None = None


class AssistantPrompt(BaseModel):
    speech: str
    text: str


class AssistantPromptBlock(BaseModel):
    override: bool = False
    firstSimple: AssistantPrompt


class AssistantResponse(BaseModel):
    session: dict[str, Any] = Field(default_factory=lambda: {"params": {}})
    prompt: AssistantPromptBlock
