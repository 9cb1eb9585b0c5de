"""ASGI entrypoint: serves GainChef with settings read from the environment."""

from gainchef.api.app import create_app
from gainchef.config import Settings
from gainchef.containers import build_container

settings = Settings()
app = create_app(build_container(settings))
