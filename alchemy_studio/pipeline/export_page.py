"""
Export Page
Wraps the current studio image in a standalone HTML viewer with
"Download PNG" and "Close" buttons, the way the studio's export window does.
"""

import os
import time
from typing import Optional

from dotenv import load_dotenv
from jinja2 import Template

from ..models.image import RasterImage
from ..services.image_service import ImageService

# Load environment variables
load_dotenv()

EXPORT_TITLE = os.getenv("EXPORT_TITLE", "Digital Alchemy")
FILENAME_PREFIX = "digital-alchemy"

_PAGE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title }} - Exported Art</title>
    <style>
        body {
            margin: 0;
            padding: 20px;
            background: linear-gradient(135deg, #0a0e27 0%, #1a0e3a 50%, #0f1a2e 100%);
            color: #e0e0ff;
            font-family: 'Courier New', monospace;
            display: flex;
            flex-direction: column;
            align-items: center;
            justify-content: center;
            min-height: 100vh;
        }
        .container {
            text-align: center;
            background: rgba(255, 255, 255, 0.03);
            border: 2px solid rgba(255, 0, 255, 0.3);
            border-radius: 8px;
            padding: 2rem;
        }
        h1 { margin-bottom: 1rem; font-size: 2rem; color: #ff00ff; }
        img {
            max-width: 100%;
            max-height: 70vh;
            border: 2px solid rgba(0, 255, 255, 0.5);
            border-radius: 4px;
            margin: 1rem 0;
        }
        .buttons { display: flex; gap: 1rem; justify-content: center; margin-top: 1.5rem; }
        .buttons button, .buttons a {
            display: inline-block;
            padding: 0.8rem 1.5rem;
            font-size: 0.9rem;
            line-height: 1.2;
            text-decoration: none;
            border: 2px solid;
            border-radius: 4px;
            cursor: pointer;
            font-family: 'Courier New', monospace;
            font-weight: bold;
            text-transform: uppercase;
        }
        .download { border-color: rgba(0, 255, 100, 0.6); color: #00ff99; background: rgba(0, 255, 100, 0.3); }
        .close { border-color: rgba(255, 100, 0, 0.6); color: #ffaa00; background: rgba(255, 100, 0, 0.3); }
    </style>
</head>
<body>
    <div class="container">
        <h1>{{ title }}</h1>
        <img src="{{ data_url }}" alt="Exported artwork" width="{{ width }}" height="{{ height }}">
        <div class="buttons">
            <a class="download" href="{{ data_url }}" download="{{ filename }}">Download PNG</a>
            <button class="close" onclick="window.close()">Close</button>
        </div>
    </div>
</body>
</html>
""", autoescape=True)


def export_filename(timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{FILENAME_PREFIX}-{timestamp_ms}.png"


def render_export_page(
    image: RasterImage,
    *,
    image_service: Optional[ImageService] = None,
    title: str = EXPORT_TITLE,
    filename: Optional[str] = None,
) -> str:
    """
    Build the export viewer for *image*.

    Args:
        image: The image currently shown in the studio.
        image_service: Service used to encode the PNG data URL.
        title: Page heading.
        filename: Download name; defaults to ``digital-alchemy-<epoch ms>.png``.

    Returns:
        str: A self-contained HTML document.
    """
    image_service = image_service or ImageService()
    return _PAGE.render(
        title=title,
        data_url=image_service.to_data_url(image),
        width=image.width,
        height=image.height,
        filename=filename or export_filename(),
    )
