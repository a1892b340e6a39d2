# backend/sardb/serve.py
"""
Production entry point: `python -m sardb.serve`.

Every option comes from the environment (HOST, PORT, RELOAD, LOG_LEVEL,
WEB_CONCURRENCY, FORWARDED_ALLOW_IPS, SSL_*).
"""

import os
from typing import Any, Dict

import uvicorn

_TRUTHY = {"1", "true", "yes", "on"}


def _ssl_options() -> Dict[str, str]:
    mapping = {
        "SSL_CERTFILE": "ssl_certfile",
        "SSL_KEYFILE": "ssl_keyfile",
        "SSL_CA_CERTS": "ssl_ca_certs",
        "SSL_KEYFILE_PASSWORD": "ssl_keyfile_password",
    }
    return {option: os.environ[env] for env, option in mapping.items() if os.getenv(env)}


def server_options() -> Dict[str, Any]:
    reload_enabled = os.getenv("RELOAD", "false").lower() in _TRUTHY
    options: Dict[str, Any] = {
        "host": os.getenv("HOST", "0.0.0.0"),
        "port": int(os.getenv("PORT", "8000")),
        "reload": reload_enabled,
        "log_level": os.getenv("LOG_LEVEL", "info"),
        "proxy_headers": True,
        "forwarded_allow_ips": os.getenv("FORWARDED_ALLOW_IPS", "*"),
    }
    # uvicorn refuses workers together with reload
    if not reload_enabled:
        options["workers"] = int(os.getenv("WEB_CONCURRENCY", "1"))
    options.update(_ssl_options())
    return options


def main() -> None:
    uvicorn.run("sardb.main:app", **server_options())


if __name__ == "__main__":
    main()
