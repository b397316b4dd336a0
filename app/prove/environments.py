# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Prove API server environments."""

import logging
from enum import Enum
from typing import Dict

logger = logging.getLogger("prove.environments")


class ServerEnvironment(str, Enum):
    UAT_US = "uat-us"
    PROD_US = "prod-us"
    UAT_EU = "uat-eu"
    PROD_EU = "prod-eu"

    @classmethod
    def from_setting(cls, value: str) -> "ServerEnvironment":
        """Map a configured name to an environment, defaulting to uat-us."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            logger.warning(
                "Unrecognized Prove server environment %r; using %s",
                value, cls.UAT_US.value,
            )
            return cls.UAT_US

    @property
    def base_url(self) -> str:
        return SERVER_URLS[self]


SERVER_URLS: Dict[ServerEnvironment, str] = {
    ServerEnvironment.UAT_US: "https://platform.uat.proveapis.com",
    ServerEnvironment.PROD_US: "https://platform.proveapis.com",
    ServerEnvironment.UAT_EU: "https://platform.uat.eu.proveapis.com",
    ServerEnvironment.PROD_EU: "https://platform.eu.proveapis.com",
}
