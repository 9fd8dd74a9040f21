import json
import os
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict


@dataclass
class CheckConfig:
    """Configuration for a revocation check run"""
    url: str = ""
    cert_path: str = ""
    responder_url: str = ""  # overrides the certificate's OCSP server
    no_staple: bool = False
    dump: bool = False

    # Transport settings
    aia_timeout: float = 10.0
    ocsp_timeout: Optional[float] = None  # None keeps the transport default

    # Request settings
    hash_algorithm: str = "sha1"
    include_nonce: bool = False


class ConfigManager:
    """Manages saving and loading of configuration"""

    def __init__(self, config_file: Optional[str] = None):
        if config_file:
            self.config_file = config_file
        else:
            local_appdata = os.getenv("LOCALAPPDATA") or os.getenv("APPDATA")
            if local_appdata:
                default_dir = os.path.join(local_appdata, "OCSPChecker")
            else:
                default_dir = os.path.join(os.path.expanduser("~"), ".ocsp_checker")
            self.config_file = os.path.join(default_dir, "ocsp_checker.json")
        self.config = CheckConfig()

    def load_config(self) -> CheckConfig:
        """Load configuration from file; a missing file keeps the defaults"""
        if not os.path.exists(self.config_file):
            return self.config

        with open(self.config_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {self.config_file} must contain a JSON object")
        self.update_from_dict(data)
        return self.config

    def save_config(self, config: CheckConfig) -> None:
        """Save configuration to file (atomic replace)"""
        config_dir = os.path.dirname(self.config_file) or "."
        os.makedirs(config_dir, exist_ok=True)

        tmp_path = self.config_file + ".tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(asdict(config), f, indent=2)
        os.replace(tmp_path, self.config_file)
        self.config = config

    def update_from_dict(self, data: Dict[str, Any]) -> None:
        """Update config from dictionary, ignoring unknown keys"""
        for key, value in data.items():
            if hasattr(self.config, key):
                setattr(self.config, key, value)
