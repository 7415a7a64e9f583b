import io

import pytest
from PIL import Image

from ciphercanvas.errors import ImageError
from ciphercanvas.matrix import QUIET_ZONE
from ciphercanvas.raster import rasterize, render_document, svg_to_png
from ciphercanvas.svg import module_pixels, output_dimension, render_svg

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)
CLEAR = (0, 0, 0, 0)


def _svg(body, attributes='width="10" height="10"'):
    return (
        '<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" '
        f"{attributes}>{body}</svg>"
    )


def _png_image(data):
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def _is_blank(image):
    return image.getchannel("A").getbbox() is None


@pytest.mark.parametrize("requested", [64, 128, 200, 512])
def test_qr_svg_rasterizes_to_reported_dimension(wifi_matrix, requested):
    dimension = output_dimension(wifi_matrix.size, requested)
    svg_text = render_svg(wifi_matrix, requested, foreground="#000000", background="#ffffff")
    image = _png_image(svg_to_png(svg_text, dimension))
    assert image.size == (dimension, dimension)
    assert image.mode == "RGBA"


def test_qr_raster_is_crisp(wifi_matrix, wifi_svg):
    unit = module_pixels(wifi_matrix.size, 128)
    dimension = output_dimension(wifi_matrix.size, 128)
    image = rasterize(wifi_svg, dimension)

    assert image.getpixel((0, 0)) == WHITE
    assert image.getpixel((dimension - 1, dimension - 1)) == WHITE
    # top-left finder pattern corner, first and last pixel of the module
    corner = QUIET_ZONE * unit
    assert image.getpixel((corner, corner)) == BLACK
    assert image.getpixel((corner + unit - 1, corner + unit - 1)) == BLACK
    assert image.getpixel((corner - 1, corner - 1)) == WHITE
    assert {color for _, color in image.getcolors()} == {BLACK, WHITE}


def test_dark_pixel_count_matches_modules(wifi_matrix, wifi_svg):
    unit = module_pixels(wifi_matrix.size, 128)
    dimension = output_dimension(wifi_matrix.size, 128)
    image = rasterize(wifi_svg, dimension)
    colors = dict((color, count) for count, color in image.getcolors())
    assert colors[BLACK] == wifi_matrix.dark_count() * unit * unit


def test_smaller_target_crops_without_scaling(wifi_svg):
    image = rasterize(wifi_svg, 20)
    assert image.size == (20, 20)
    assert image.getpixel((0, 0)) == WHITE


def test_larger_target_leaves_transparent_margin():
    image = rasterize(_svg('<rect width="10" height="10" fill="white"/>'), 16)
    assert image.getpixel((9, 9)) == WHITE
    assert image.getpixel((10, 10)) == CLEAR


def test_rect_edges_are_pixel_exact():
    image = rasterize(_svg('<rect x="2" y="2" width="4" height="4" fill="red"/>'), 10)
    assert image.getpixel((2, 2)) == (255, 0, 0, 255)
    assert image.getpixel((5, 5)) == (255, 0, 0, 255)
    assert image.getpixel((6, 6)) == CLEAR
    assert image.getpixel((1, 1)) == CLEAR


def test_view_box_scales_to_intrinsic_size():
    image = rasterize(_svg('<rect width="5" height="5"/>', 'width="20" height="20" viewBox="0 0 10 10"'), 20)
    assert image.getpixel((9, 9)) == BLACK
    assert image.getpixel((10, 10)) == CLEAR


def test_document_renders_at_intrinsic_size():
    assert render_document(_svg("", 'width="40" height="30"')).size == (40, 30)


def test_group_transform_and_inherited_fill():
    image = rasterize(_svg('<g fill="#00ff00" transform="translate(5,0)"><rect width="2" height="2"/></g>'), 10)
    assert image.getpixel((5, 0)) == (0, 255, 0, 255)
    assert image.getpixel((0, 0)) == CLEAR


def test_style_attribute_overrides_presentation_attribute():
    image = rasterize(_svg('<rect width="4" height="4" fill="red" style="fill: blue"/>'), 10)
    assert image.getpixel((1, 1)) == (0, 0, 255, 255)


def test_stylesheet_rules_apply():
    image = rasterize(_svg('<style>.a { fill: red }</style><rect class="a" width="4" height="4"/>'), 10)
    assert image.getpixel((1, 1)) == (255, 0, 0, 255)


def test_use_references_are_rendered():
    body = '<defs><rect id="r" width="4" height="4" fill="blue"/></defs><use xlink:href="#r" x="2" y="2"/>'
    image = rasterize(_svg(body), 10)
    assert image.getpixel((3, 3)) == (0, 0, 255, 255)
    assert image.getpixel((0, 0)) == CLEAR


def test_arcs_are_rendered():
    image = rasterize(_svg('<path d="M2 5 A3 3 0 1 1 8 5 A3 3 0 1 1 2 5 Z" fill="#00ff00"/>'), 10)
    assert image.getpixel((5, 5)) == (0, 255, 0, 255)
    assert image.getpixel((0, 0)) == CLEAR


def test_relative_lengths_resolve_against_viewport():
    image = rasterize(_svg('<rect width="100%" height="100%" fill="white"/>'), 10)
    assert image.getpixel((9, 9)) == WHITE


def test_absolute_units_are_accepted():
    image = rasterize(_svg('<rect width="100%" height="100%" fill="white"/>', 'width="10mm" height="10mm"'), 50)
    assert image.getpixel((0, 0)) == WHITE
    assert image.getpixel((36, 36)) == WHITE
    assert image.getpixel((40, 40)) == CLEAR


def test_fill_opacity():
    _, _, _, alpha = rasterize(_svg('<rect width="4" height="4" fill="red" fill-opacity="0.5"/>'), 10).getpixel((1, 1))
    assert abs(alpha - 128) <= 1


def test_circle_is_filled():
    image = rasterize(_svg('<circle cx="5" cy="5" r="4" fill="#00ff00"/>'), 10)
    assert image.getpixel((5, 5)) == (0, 255, 0, 255)
    assert image.getpixel((0, 0)) == CLEAR


def test_unpainted_elements_leave_buffer_clear():
    body = (
        '<rect width="4" height="4" fill="none"/>'
        '<rect width="4" height="4" display="none"/>'
        '<defs><rect width="4" height="4"/></defs>'
    )
    assert _is_blank(rasterize(_svg(body), 10))


@pytest.mark.parametrize("document", ["<svg", "not xml at all"])
def test_invalid_documents_raise_image_error(document):
    with pytest.raises(ImageError, match="Failed to parse SVG data"):
        svg_to_png(document, 10)


@pytest.mark.parametrize("size", [0, -5, 50000])
def test_invalid_buffer_sizes_raise_image_error(size):
    with pytest.raises(ImageError):
        rasterize(_svg(""), size)


def test_png_output_is_standard_png(wifi_svg):
    data = svg_to_png(wifi_svg, 64)
    assert data.startswith(b"\x89PNG\r\n\x1a\n")
    assert _png_image(data).mode == "RGBA"
