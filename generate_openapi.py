"""Generate an OpenAPI schema file for the FastAPI application."""

from copy import deepcopy
from pathlib import Path
import json
from typing import Any, Dict, Optional

from device_link.main import app


def build_openapi(server_url: Optional[str] = None) -> Dict[str, Any]:
    schema = deepcopy(app.openapi())
    if server_url:
        schema["servers"] = [{"url": server_url}]
    return schema


def generate_openapi(server_url: Optional[str] = None) -> Path:
    """Write the current OpenAPI schema to ``openapi.json``."""
    output_path = Path(__file__).resolve().parent / "openapi.json"
    output_path.write_text(json.dumps(build_openapi(server_url), indent=2))
    return output_path


if __name__ == "__main__":
    generate_openapi()
