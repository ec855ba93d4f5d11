from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "CardScribe"
    debug: bool = False

    # WHISPER export and its encoding (older exports are Shift_JIS: "cp932")
    corpus_path: Path = Path("data/whisper.txt")
    corpus_encoding: str = "utf-8-sig"

    # Hand-maintained corrections applied after parsing
    fixup_path: Path = Path("data/appendix.xml")

    # Built index, loaded at startup in preference to re-parsing the corpus
    snapshot_path: Path = Path("data/cards.xml")

    price_cache_path: Path = Path("data/price_list.txt")
    legal_list_path: Path = Path("data/pd_legal_cards.txt")

    enable_card_price: bool = True
    # Download the Penny Dreadful legal list at startup
    enable_legal_list: bool = False
    scryfall_api_url: str = "https://api.scryfall.com"
    legal_list_url: str = "http://pdmtgo.com/legal_cards.txt"
    user_agent: str = "CardScribe/1.0"
    http_timeout: float = 30.0

    # Show the five basic lands when they are the only card in the pane
    show_basic_lands: bool = True


settings = Settings()


# =============================================================================
# PRICE CACHE POLICY
# =============================================================================

# Cached prices are trusted for one day
PRICE_TTL_SECONDS = 24 * 60 * 60

# Scryfall asks clients to keep 50-100 ms between requests; the price lookup
# is bursty (one per preview pane change), so keep a wider gap
PRICE_THROTTLE_SECONDS = 0.2

# Wait before the single retry of a declined or failed fetch
PRICE_RETRY_DELAY_SECONDS = 1.0
