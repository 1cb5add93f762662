from __future__ import annotations

from functools import lru_cache

from packbuilder.core.service import BuilderService
from packbuilder.core.settings import Settings
from packbuilder.core.stacks import StackConfig


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def get_stacks() -> StackConfig:
    return StackConfig.load(get_settings().config_path)


def get_builder_service() -> BuilderService:
    settings = get_settings()
    return BuilderService(settings=settings, stacks=get_stacks())
