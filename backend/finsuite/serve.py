# backend/finsuite/serve.py
"""Run the API under uvicorn, configured from the environment."""

import os
from typing import Any, Dict

import uvicorn

TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in TRUTHY


def _ssl_options() -> Dict[str, str]:
    """Map the optional SSL_* variables onto uvicorn keyword arguments."""
    mapping = {
        "SSL_CERTFILE": "ssl_certfile",
        "SSL_KEYFILE": "ssl_keyfile",
        "SSL_CA_CERTS": "ssl_ca_certs",
        "SSL_KEYFILE_PASSWORD": "ssl_keyfile_password",
    }
    return {option: os.environ[env] for env, option in mapping.items() if os.getenv(env)}


def uvicorn_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "host": os.getenv("HOST", "0.0.0.0"),
        "port": int(os.getenv("PORT", "8000")),
        "reload": _flag("RELOAD"),
        "log_level": os.getenv("LOG_LEVEL", "info"),
        "proxy_headers": True,
        "forwarded_allow_ips": os.getenv("FORWARDED_ALLOW_IPS", "*"),
    }
    options.update(_ssl_options())
    return options


def main() -> None:
    uvicorn.run("finsuite.main:app", **uvicorn_options())


if __name__ == "__main__":
    main()
