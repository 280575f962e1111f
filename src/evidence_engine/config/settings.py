"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    google_api_key: str = ""

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_max_query_chars: int = 2048
    embedding_retry_attempts: int = 3

    # LLM / Gemini
    gemini_model: str = "gemini-2.0-flash"
    generation_temperature: float = 0.2
    generation_max_tokens: int = 8192

    # Argumentation-line synthesis
    synthesis_temperature: float = 0.7
    synthesis_max_tokens: int = 8000
    synthesis_excerpt_units: int = 20
    synthesis_excerpt_chars: int = 200

    # Generation retry (throttling only)
    generation_retry_attempts: int = 5
    generation_retry_base_seconds: float = 2.0
    generation_retry_max_seconds: float = 10.0

    # Retrieval
    retrieval_pool_size: int = 150

    # Scoring
    length_norm_chars: int = 500
    length_norm_floor: float = 0.7
    position_bias_floor: float = 0.9
    position_bias_pages: float = 100.0
    keyword_bonus_max: float = 0.15
    keyword_min_term_length: int = 4
    coherence_per_unit: float = 0.05
    coherence_group_cap: float = 0.2
    coherence_leading_bonus: float = 0.05
    pattern_bonus_per_marker: float = 0.02
    argument_group_gap: int = 5

    # Argument re-ranking caps
    rerank_focus_cap: float = 0.3
    rerank_topic_cap: float = 0.25
    rerank_approach_cap: float = 0.15

    # Selection budget
    max_evidence_chars: int = 50_000
    avg_unit_chars: int = 500
    min_target_sources: int = 3
    max_target_sources: int = 8
    target_source_fraction: float = 0.5
    min_units_per_source: int = 2
    hard_cap_fraction: float = 0.3

    # Selection strategy
    selection_strategy: Literal["tiered", "mmr"] = "tiered"
    tiered_fill_threshold: float = 0.9
    primary_group_min_size: int = 2
    primary_best_units: int = 2
    mmr_lambda: float = 0.7
    mmr_diversity_bonus: float = 0.05
    mmr_duplicate_threshold: float = 0.8

    # Context expansion
    expansion_radius: int = 1
    expansion_overflow: float = 1.1

    # Coverage quality weights (sum to 100)
    quality_w_coverage: float = 40.0
    quality_w_primary: float = 30.0
    quality_w_density: float = 20.0
    quality_w_strength: float = 10.0
    quality_density_saturation: float = 10.0
    quality_strength_cap: float = 2.0

    # Word limits
    max_word_limit: int = 5000

    # Admission control
    caller_lock_timeout_seconds: float = 300.0
    throttle_escalation_threshold: int = 3
    queue_cooldown_seconds: float = 120.0
    queue_max_residency_seconds: float = 600.0
    queue_item_delay_seconds: float = 2.0
    queue_throttled_delay_seconds: float = 10.0
    queue_wait_estimate_seconds: int = 60
    queue_max_length: int = 100
    queue_result_retention: int = 500

    # Storage paths
    embedding_cache_db_path: str = "data/embedding_cache.db"
    corpus_path: str = "data/corpus.json"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Auth / JWT
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_minutes: int = 60
    api_keys: str = ""  # comma-separated list of valid API keys

    model_config = {"env_file": ".env", "env_prefix": "EVIDENCE_"}
