from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator

class Settings(BaseSettings):
	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Where finished results are written: "sql" (local table) or "supabase" (remote PostgREST table)
	result_store: str = Field(default="sql", validation_alias="RESULT_STORE")
	supabase_url: str | None = Field(default=None, validation_alias="SUPABASE_URL")
	supabase_key: str | None = Field(default=None, validation_alias="SUPABASE_KEY")
	supabase_table: str = Field(default="tests", validation_alias="SUPABASE_TABLE")
	supabase_timeout_seconds: float = Field(default=10.0, validation_alias="SUPABASE_TIMEOUT_SECONDS")

	# Auth configuration
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	# Seed user
	seed_username: str | None = Field(default=None, validation_alias="SEED_USERNAME")
	seed_password_plain: str | None = Field(default=None, validation_alias="SEED_PASSWORD")

	# Test engine tuning
	viewing_distance_inches: float = Field(default=18.0, validation_alias="VIEWING_DISTANCE_INCHES")
	min_ppi: float = Field(default=72.0, ge=72.0, le=600.0, validation_alias="MIN_PPI")
	max_ppi: float = Field(default=600.0, ge=72.0, le=600.0, validation_alias="MAX_PPI")
	num_test_letters: int = Field(default=10, validation_alias="NUM_TEST_LETTERS")
	max_reversals: int = Field(default=6, validation_alias="MAX_REVERSALS")
	deficiency_threshold_ratio: float = Field(default=0.30, validation_alias="DEFICIENCY_THRESHOLD_RATIO")

	# In-progress sessions untouched for this long are dropped
	session_ttl_minutes: int = Field(default=60, validation_alias="SESSION_TTL_MINUTES")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	@model_validator(mode="after")
	def _check_ppi_band(self) -> "Settings":
		# MIN_PPI/MAX_PPI may narrow the plausible [72, 600] band, never widen it
		if self.min_ppi > self.max_ppi:
			raise ValueError("MIN_PPI must not exceed MAX_PPI")
		return self

settings = Settings()
