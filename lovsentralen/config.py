from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter (OpenAI-compatible reasoning backend)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "openai/gpt-4o"
    openrouter_model: str = ""
    reasoning_max_tokens: int = 4000
    synthesis_max_tokens: int = 8000

    # Web search
    search_provider: str = "serper"  # serper | brave
    serper_api_key: str = ""
    brave_api_key: str = ""
    search_fallback_enabled: bool = True
    search_country: str = "no"
    search_language: str = "no"
    search_results_per_query: int = 10
    search_query_delay_seconds: float = 0.2
    search_timeout_seconds: float = 30.0
    max_search_queries: int = 20
    max_pages_to_fetch: int = 15

    # Page fetching
    page_fetch_timeout_seconds: float = 10.0
    page_fetch_batch_size: int = 5
    page_max_content_chars: int = 50000

    # Analysis pipeline
    excerpts_per_issue: int = 4
    max_legal_issues: int = 5
    max_clarifying_questions: int = 3
    repair_max_iterations: int = 2
    repair_max_pages: int = 3
    quality_max_parallel: int = 4
    preliminary_context_results: int = 5

    # Case / evidence / result store
    case_store_backend: str = "supabase"  # supabase | memory
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
