import os

import uvicorn

if __name__ == "__main__":
    host = os.environ.get("ENFORCER_HOST", "0.0.0.0")
    port = int(os.environ.get("ENFORCER_PORT", "8000"))

    print("[*] Starting Contract Enforcer API Server...")
    print(f"[*] Docs available at: http://localhost:{port}/docs")

    uvicorn.run(
        "enforcer.api.server:app",
        host=host,
        port=port,
        reload=True
    )
