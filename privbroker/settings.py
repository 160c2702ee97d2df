## ================================================================================
## settings.py is a part of privbroker, which is distributed under the
## following license:
##
## Copyright (C) 2018 Jonas Møller (no) <jonasmo441@gmail.com>
## All rights reserved.
##
## Redistribution and use in source and binary forms, with or without
## modification, are permitted provided that the following conditions are met:
## 
## 1. Redistributions of source code must retain the above copyright notice, this
##    list of conditions and the following disclaimer.
## 2. Redistributions in binary form must reproduce the above copyright notice,
##    this list of conditions and the following disclaimer in the documentation
##    and/or other materials provided with the distribution.
## 
## THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND
## ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
## WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
## DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
## FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
## DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
## SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
## CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
## OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
## OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
## SOFTWARE.
## ================================================================================

"""
Settings come from, highest priority first:
  - PRIVBROKER_<SETTING> environment variables
  - the JSON config file (PRIVBROKER_CONFIG, or ~/.config/privbroker/config.json)
  - the defaults below
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from .locations import location
from .privesc import PrivbrokerException

log = logging.getLogger(__name__)

class SettingsError(PrivbrokerException):
    pass

class Settings(BaseSettings):
    ## Ask polkit with pkcheck before running pkexec, so that no
    ## authentication agent ever gets to put up a dialog.
    policy_precheck: bool = True
    polkit_action: str = "org.freedesktop.policykit.exec"
    max_workers: int = Field(default=4, ge=1)
    log_level: str = "WARNING"

    model_config = {"env_prefix": "PRIVBROKER_", "extra": "ignore"}

    @field_validator("log_level")
    @classmethod
    def knownLevel(cls, v: str) -> str:
        if not isinstance(logging.getLevelName(v.upper()), int):
            raise ValueError(f"Unknown log level: {v}")
        return v.upper()

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings,
                                   dotenv_settings, file_secret_settings):
        ## Values from the config file arrive as init arguments
        return env_settings, init_settings

    @classmethod
    def fromDict(cls, values: Optional[Dict[str, Any]] = None) -> "Settings":
        values = dict(values or {})
        for k in list(values):
            if k not in cls.model_fields:
                log.warning("Ignoring unknown setting: %s", k)
                del values[k]
        try:
            return cls(**values)
        except ValidationError as e:
            raise SettingsError(f"Invalid settings: {e}")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Settings":
        """
        Read settings from a JSON file, missing keys get their defaults.
        A missing file is not an error.
        """
        path = path or location("config")
        if not os.path.exists(path):
            log.debug("No config at %s, using defaults", path)
            return cls.fromDict()
        with open(path) as f:
            try:
                obj = json.load(f)
            except json.JSONDecodeError as e:
                raise SettingsError(f"Malformed config {path}: {e}")
        if not isinstance(obj, dict):
            raise SettingsError(f"Config {path} must contain a JSON object")
        return cls.fromDict(obj)
