import re

from alchemy_studio.models.image import RasterImage
from alchemy_studio.pipeline.export_page import export_filename, render_export_page
from alchemy_studio.services.image_service import ImageService


def test_export_filename():
    assert export_filename(1700000000123) == "digital-alchemy-1700000000123.png"
    assert re.fullmatch(r"digital-alchemy-\d{13}\.png", export_filename())


def test_page_embeds_png_and_buttons():
    img = RasterImage.blank(5, 4, color=(200, 10, 10, 255))
    service = ImageService()
    html = render_export_page(img, image_service=service, title="My Art", filename="x.png")

    assert html.startswith("<!DOCTYPE html>")
    assert "<title>My Art - Exported Art</title>" in html
    assert service.to_data_url(img) in html
    assert 'download="x.png"' in html
    assert "Download PNG" in html
    assert "window.close()" in html
    assert 'width="5" height="4"' in html


def test_title_is_escaped():
    html = render_export_page(RasterImage.blank(1, 1), title="<script>")
    assert "<script>" not in html.split("<body>")[1]
    assert "&lt;script&gt;" in html


def test_download_is_a_plain_link():
    html = render_export_page(RasterImage.blank(2, 2), filename="y.png")
    assert '<a class="download" href="data:image/png;base64,' in html
    assert 'download="y.png">Download PNG</a>' in html
    assert not re.search(r"<a\b[^>]*>\s*<button", html)
    assert '<button class="download"' not in html
    assert html.count("<button") == 1
