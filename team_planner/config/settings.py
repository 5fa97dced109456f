from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TEAM_PLANNER_", env_file=".env")

    app_name: str = "Team Planner"
    debug: bool = False
    log_level: str = "INFO"
    # Right-edge resizes shift every later assignment in the lane.
    cascade_on_resize: bool = True
    seed_sample_data: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
