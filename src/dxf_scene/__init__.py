"""dxf-scene: ASCII DXF codec and CAD scene-graph classifier."""

__version__ = "0.1.0"

from .document import LabelDocument
from .dxf_reader import import_dxf, inspect_dxf, parse_dxf, read_dxf
from .dxf_writer import WriterOptions, save_dxf, write_dxf
from .errors import DxfError, MalformedGroupCode
from .geometry import SimpleKernel
from .models import ShapeNode
from .scene import classify_document, decompose_shape, is_mesh_node

__all__ = [
    "DxfError",
    "LabelDocument",
    "MalformedGroupCode",
    "ShapeNode",
    "SimpleKernel",
    "WriterOptions",
    "classify_document",
    "decompose_shape",
    "import_dxf",
    "inspect_dxf",
    "is_mesh_node",
    "parse_dxf",
    "read_dxf",
    "save_dxf",
    "write_dxf",
]
