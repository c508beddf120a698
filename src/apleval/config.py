"""Connection settings for the APL query endpoint, read from the environment."""

import os
from typing import Optional

import dotenv
from pydantic import BaseModel, Field, field_validator

from .errors import ConfigurationError

dotenv.load_dotenv()

URL_ENV = "AXIOM_PLAY_URL"
TOKEN_ENV = "AXIOM_PLAY_TOKEN"
ORG_ID_ENV = "AXIOM_PLAY_ORG_ID"

MISSING_CONFIG_MESSAGE = f"{URL_ENV} and {TOKEN_ENV} not configured"


class AxiomConfig(BaseModel):
    url: str = Field(description="Base URL of the query endpoint, e.g. https://api.axiom.co")
    token: str = Field(description="Bearer token sent in the Authorization header.")
    org_id: Optional[str] = Field(default=None, description="Value for X-Axiom-Org-Id.")

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def query_url(self) -> str:
        return f"{self.url}/v1/datasets/_apl?format=tabular"

    def headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        if self.org_id:
            headers["X-Axiom-Org-Id"] = self.org_id
        return headers

    @classmethod
    def from_env(cls) -> Optional["AxiomConfig"]:
        """
        Build a config from AXIOM_PLAY_URL / AXIOM_PLAY_TOKEN / AXIOM_PLAY_ORG_ID.

        Returns:
            AxiomConfig, or None when the URL or the token is missing
        """
        url = os.getenv(URL_ENV)
        token = os.getenv(TOKEN_ENV)

        if not url or not token:
            return None

        return cls(url=url, token=token, org_id=os.getenv(ORG_ID_ENV) or None)


def load_config(required: bool = False) -> Optional[AxiomConfig]:
    config = AxiomConfig.from_env()
    if config is None and required:
        raise ConfigurationError(
            f"{MISSING_CONFIG_MESSAGE}. Set {URL_ENV} and {TOKEN_ENV} in the environment or .env"
        )
    return config
