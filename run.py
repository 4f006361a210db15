#!/usr/bin/env python3
"""
Run script for the Weathercaster backend
"""
import uvicorn

from weathercaster.config.settings import settings
from weathercaster.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
