"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DEFAULT_IMAGE_BASE


class Settings(BaseSettings):
	"""Settings loaded from environment variables (prefix MOVIES_) or a .env file."""

	model_config = SettingsConfigDict(
		env_prefix="MOVIES_",
		env_file=".env",
		env_file_encoding="utf-8",
		case_sensitive=False,
		extra="ignore",
	)

	# Catalog (TMDB) configuration
	tmdb_api_key: str = Field(default="", description="TMDB v3 API key or v4 read access token")
	tmdb_base_url: str = Field(default="https://api.themoviedb.org/3", description="Catalog API base URL")
	tmdb_image_base: str = Field(default=DEFAULT_IMAGE_BASE, description="Poster image host and size prefix")
	tmdb_timeout: float = Field(default=10.0, description="HTTP request timeout in seconds")

	# Interaction and dispatch
	search_debounce_ms: int = Field(default=400, description="Quiet period before a search edit is submitted")
	catalog_workers: int = Field(default=4, description="Threads available for in-flight catalog calls")

	# UI / logging
	api_url: str = Field(default="http://localhost:8000", description="API base URL used by the Streamlit UI")
	log_level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")


@lru_cache
def get_settings() -> Settings:
	"""Get cached settings instance."""
	return Settings()
