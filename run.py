#!/usr/bin/env python3
"""Run script for stockpilot."""

import os
import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "stockpilot.api.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("DEBUG", "False").lower() == "true",
    )
