from fastapi import Request
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field

class Settings(BaseSettings):
	app_env: str = Field(default="development", validation_alias="APP_ENV")
	api_prefix: str = Field(default="/api", validation_alias="API_PREFIX")
	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Database
	database_url: str = Field(default="sqlite:///./lcmaths.db", validation_alias="DATABASE_URL")

	# Gemini marking; leaving the key unset disables AI feedback entirely
	gemini_api_key: str | None = Field(default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"))
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-1.5-flash-latest", validation_alias="GEMINI_MODEL")
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	gemini_timeout_seconds: float = Field(default=15.0, validation_alias="GEMINI_TIMEOUT_SECONDS")
	gemini_temperature: float = Field(default=0.2, validation_alias="GEMINI_TEMPERATURE")
	gemini_max_output_tokens: int = Field(default=400, validation_alias="GEMINI_MAX_OUTPUT_TOKENS")

	# Sessions / auth
	session_cookie_name: str = Field(default="session_id", validation_alias="SESSION_COOKIE_NAME")
	session_cookie_secure: bool = Field(default=False, validation_alias="SESSION_COOKIE_SECURE")
	session_ttl_hours: int = Field(default=24 * 30, validation_alias="SESSION_TTL_HOURS")
	password_min_length: int = Field(default=6, validation_alias="PASSWORD_MIN_LENGTH")
	bcrypt_rounds: int = Field(default=12, validation_alias="BCRYPT_ROUNDS")
	# Comma separated; matching accounts are created as admins
	admin_emails: str = Field(default="", validation_alias="ADMIN_EMAILS")

	seed_demo_content: bool = Field(default=True, validation_alias="SEED_DEMO_CONTENT")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

	@property
	def gemini_enabled(self) -> bool:
		return bool(self.gemini_api_key)

	@property
	def admin_email_set(self) -> set[str]:
		return {e.strip().lower() for e in self.admin_emails.split(",") if e.strip()}

settings = Settings()


def get_settings(request: Request) -> Settings:
	return request.app.state.settings
