import json
import os
import sys

from src.api.main import app, websocket_info


def main(output_dir: str = "interfaces") -> str:
    """Write the OpenAPI document (REST routes under /api/v1) plus the WebSocket feed description."""
    openapi_schema = app.openapi()
    # WebSocket routes are not part of OpenAPI; publish them as an extension
    openapi_schema["x-websocket-endpoints"] = websocket_info()["endpoints"]

    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, "openapi.json")
    with open(output_path, "w") as f:
        json.dump(openapi_schema, f, indent=2)
    return output_path


if __name__ == "__main__":
    print(main(*sys.argv[1:2]))
