from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/restaurant"
    log_level: str = "INFO"

    # Ordering
    draft_ttl_minutes: int = 30
    default_page_limit: int = 10
    staff_page_limit: int = 50
    seed_menu: bool = True

    # Kafka
    kafka_bootstrap_servers: str = "kafka:9092"

    # Observability (empty endpoint disables tracing)
    otlp_endpoint: str = "http://jaeger:4318/v1/traces"

    model_config = {"env_file": ".env"}


settings = Settings()
