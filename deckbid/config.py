from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./deckbid.db"
    COMPANY_NAME: str = "DeckBid Estimating"
    COMPANY_EMAIL: str = "estimates@deckbid.local"

    # Estimate defaults — fractions, not percents
    DEFAULT_OVERHEAD_PCT: float = 0.12
    DEFAULT_PROFIT_PCT: float = 0.15
    DEFAULT_TAX_PCT: float = 0.0
    DEFAULT_TAX_MODE: str = "materials_only"

    # Optional JSON price catalog merged over the built-in price book
    PRICE_BOOK_PATH: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()
