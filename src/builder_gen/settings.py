import os

from pydantic import BaseModel, ConfigDict


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    derive_name: str = "Builder"
    attribute_name: str = "builder"
    log_level: str = "WARNING"


def get_settings() -> Settings:
    return Settings(
        derive_name=os.getenv("BUILDER_GEN_DERIVE", "Builder"),
        attribute_name=os.getenv("BUILDER_GEN_ATTRIBUTE", "builder"),
        log_level=os.getenv("BUILDER_GEN_LOG_LEVEL", "WARNING").upper(),
    )
