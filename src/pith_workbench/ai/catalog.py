"""Catalog of the local models the assistant can run."""

from dataclasses import asdict, dataclass
from typing import Any, Literal


@dataclass(frozen=True)
class AIModel:
    id: str
    name: str
    size: str
    description: str
    use_case: str
    speed: Literal["Fast", "Medium", "Slow"]
    quality: Literal["Good", "Better", "Best"]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


AVAILABLE_MODELS: list[AIModel] = [
    AIModel(
        id="llama3.2:3b",
        name="Llama 3.2 3B",
        size="~2GB",
        description="The sweet spot between speed and intelligence - perfect for most users",
        use_case=(
            "Best for: Writing SQL queries, analyzing trends, answering complex questions "
            "about your data. Great all-around choice."
        ),
        speed="Fast",
        quality="Better",
    ),
    AIModel(
        id="llama3.2:1b",
        name="Llama 3.2 1B",
        size="~1.3GB",
        description="Ultra-lightweight model that responds almost instantly",
        use_case=(
            "Best for: Quick questions, simple SQL queries, fast data lookups. Choose this "
            "if you have limited storage or want the fastest responses."
        ),
        speed="Fast",
        quality="Good",
    ),
    AIModel(
        id="phi3.5:3.8b",
        name="Phi 3.5 Mini",
        size="~2.2GB",
        description="Microsoft's coding specialist - excellent at understanding technical queries",
        use_case=(
            "Best for: Complex SQL optimization, technical data transformations, code-heavy "
            "analytics. Great if you need precise SQL generation."
        ),
        speed="Medium",
        quality="Better",
    ),
    AIModel(
        id="qwen2.5:3b",
        name="Qwen 2.5 3B",
        size="~1.9GB",
        description="Alibaba's smart model with strong reasoning and multilingual support",
        use_case=(
            "Best for: Deep data analysis, complex reasoning tasks, working with international "
            "data. Supports multiple languages fluently."
        ),
        speed="Medium",
        quality="Better",
    ),
    AIModel(
        id="gemma2:2b",
        name="Gemma 2 2B",
        size="~1.6GB",
        description="Google's efficient model - great balance of size and capability",
        use_case=(
            "Best for: General analytics with low memory footprint. Good choice for older "
            "machines or when you need to save storage space."
        ),
        speed="Fast",
        quality="Good",
    ),
    AIModel(
        id="mistral:7b",
        name="Mistral 7B",
        size="~4.1GB",
        description="The most powerful option - provides the highest quality insights and explanations",
        use_case=(
            "Best for: Complex business intelligence, detailed explanations, advanced "
            "analytics. Choose this when quality matters more than speed."
        ),
        speed="Slow",
        quality="Best",
    ),
]

# Cache entries whose model name starts with one of these belong to a model family we manage
MODEL_FAMILY_FRAGMENTS = ("llama", "phi", "qwen", "gemma", "mistral")


def get_model(model_id: str) -> AIModel | None:
    for model in AVAILABLE_MODELS:
        if model.id == model_id:
            return model
    return None


def default_model_id(saved: str | None = None) -> str:
    """The saved model if the catalog still knows it, else the first entry."""
    if saved and get_model(saved) is not None:
        return saved
    return AVAILABLE_MODELS[0].id


def _normalize_tag(tag: str) -> str:
    tag = tag.strip().lower()
    return tag if ":" in tag else f"{tag}:latest"


def is_model_cache_entry(key: str) -> bool:
    """Family match on the model name, ignoring the tag and any registry prefix."""
    name = key.strip().lower().rsplit("/", 1)[-1].split(":")[0]
    return name.startswith(MODEL_FAMILY_FRAGMENTS)


def match_cache_entry(key: str) -> AIModel | None:
    """Map a runtime cache key back to a catalog model, if it is one."""
    normalized = _normalize_tag(key)
    compact_key = key.replace(" ", "").lower()
    for model in AVAILABLE_MODELS:
        if normalized == _normalize_tag(model.id):
            return model
        if model.name.replace(" ", "").lower() in compact_key:
            return model
    return None
