# core/geometry.py

import io
import os
import struct
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import trimesh

from .common_types import VolumeResult
from .exceptions import FileFormatError, MeshDecodeError

logger = logging.getLogger(__name__)

# Binary STL layout: 80-byte header, uint32 triangle count, then per triangle
# a normal, three vertices (12 little-endian float32) and a uint16 attribute.
STL_HEADER_BYTES = 80
STL_COUNT_BYTES = 4
STL_TRIANGLE_BYTES = 50

DECODE_FAILURE = "could not decode mesh"
SUPPORTED_EXTENSIONS = (".stl",)


@dataclass(frozen=True, eq=False)
class Mesh:
    """
    A decoded triangle mesh.

    ``vertices`` is an (n, 3) float array. ``indices`` is an optional flat
    array of vertex indices, three per triangle. Without an index buffer,
    consecutive vertex triples form the triangles.
    """
    vertices: np.ndarray
    indices: Optional[np.ndarray] = None

    def __post_init__(self):
        vertices = np.array(self.vertices, dtype=np.float64)
        if vertices.size == 0:
            vertices = vertices.reshape((0, 3))
        if vertices.ndim != 2 or vertices.shape[1] != 3:
            raise MeshDecodeError(f"Vertex array must have shape (n, 3), got {vertices.shape}.")
        vertices.setflags(write=False)
        object.__setattr__(self, "vertices", vertices)

        if self.indices is not None:
            indices = np.array(self.indices).reshape(-1)
            if indices.size and not np.issubdtype(indices.dtype, np.integer):
                raise MeshDecodeError(f"Triangle indices must be integers, got {indices.dtype}.")
            indices = indices.astype(np.int64)
            if indices.size and (indices.min() < 0 or indices.max() >= len(vertices)):
                raise MeshDecodeError(
                    f"Triangle index out of range (vertex count {len(vertices)}, "
                    f"index range {indices.min()}..{indices.max()})."
                )
            indices.setflags(write=False)
            object.__setattr__(self, "indices", indices)

    @property
    def is_indexed(self) -> bool:
        return self.indices is not None

    @property
    def triangle_count(self) -> int:
        """Number of triangles walked by the volume sum (0 for degenerate counts)."""
        count = len(self.indices) if self.is_indexed else len(self.vertices)
        if count % 3 != 0:
            return 0
        return count // 3

    def triangles(self) -> np.ndarray:
        """Returns the triangles as a (t, 3, 3) array in buffer order."""
        if self.triangle_count == 0:
            return np.empty((0, 3, 3), dtype=np.float64)
        if self.is_indexed:
            return self.vertices[self.indices].reshape((-1, 3, 3))
        return self.vertices.reshape((-1, 3, 3))


def compute_volume_mm3(mesh: Mesh) -> VolumeResult:
    """
    Computes the enclosed volume of a mesh by summing signed tetrahedra.

    Each triangle (v0, v1, v2) contributes dot(v0, cross(v1, v2)); the volume
    is |sum| / 6. Exact for closed, consistently wound meshes and independent
    of the winding direction. Open meshes underestimate and are not detected.
    A vertex or index count that is not a multiple of 3 yields 0.

    Args:
        mesh: The decoded mesh, in millimetres.

    Returns:
        A successful VolumeResult in cubic millimetres.
    """
    triangles = mesh.triangles()
    if len(triangles) == 0:
        logger.debug("Mesh has no complete triangles; volume is 0.")
        return VolumeResult.ok(0.0)

    v0, v1, v2 = triangles[:, 0], triangles[:, 1], triangles[:, 2]
    signed_terms = np.einsum("ij,ij->i", v0, np.cross(v1, v2))
    volume = abs(float(np.sum(signed_terms))) / 6.0

    logger.debug(f"Volume from {len(triangles)} triangles: {volume:.3f} mm³")
    return VolumeResult.ok(volume)


def mesh_from_trimesh(tm: trimesh.Trimesh) -> Mesh:
    """Builds an indexed Mesh from a Trimesh object."""
    return Mesh(vertices=np.asarray(tm.vertices), indices=np.asarray(tm.faces).reshape(-1))


def _binary_stl_length(data: bytes) -> Optional[int]:
    """Byte length implied by the binary STL triangle count, or None if the header is incomplete."""
    if len(data) < STL_HEADER_BYTES + STL_COUNT_BYTES:
        return None
    (count,) = struct.unpack_from("<I", data, STL_HEADER_BYTES)
    return STL_HEADER_BYTES + STL_COUNT_BYTES + count * STL_TRIANGLE_BYTES


def _is_ascii_stl(data: bytes) -> bool:
    return data.lstrip()[:5].lower() == b"solid"


def _empty_mesh() -> Mesh:
    return Mesh(vertices=np.empty((0, 3)))


def _check_ascii_stl(data: bytes) -> bool:
    """
    Rejects truncated or facet-less ASCII payloads.

    Returns True when the solid holds facets, False for a well-formed empty
    solid (``solid x`` ... ``endsolid x``).
    """
    text = data.decode("utf-8", errors="ignore").lower()
    if "endsolid" not in text:
        raise MeshDecodeError("ASCII STL is truncated (no 'endsolid' trailer).")
    return ("facet" in text) or ("vertex" in text)


def decode_mesh(data: bytes) -> Mesh:
    """
    Decodes binary or ASCII STL bytes into a Mesh.

    Input whose length matches its binary triangle count is binary. Otherwise
    input starting with ``solid`` is ASCII, and any other input holding at
    least the declared triangles is binary with the trailing bytes ignored.
    Vertices are not merged; each STL facet keeps its own three vertices.

    Args:
        data: Raw file contents.

    Returns:
        The decoded Mesh.

    Raises:
        MeshDecodeError: If the bytes are not a readable STL triangle mesh.
    """
    if not data:
        raise MeshDecodeError("Input is empty.")

    expected_length = _binary_stl_length(data)
    is_ascii = False
    if expected_length is not None and len(data) == expected_length:
        logger.debug(f"Detected binary STL ({len(data)} bytes).")
    elif _is_ascii_stl(data):
        logger.debug(f"Detected ASCII STL ({len(data)} bytes).")
        is_ascii = True
        if not _check_ascii_stl(data):
            logger.info("ASCII STL contains no facets.")
            return _empty_mesh()
    elif expected_length is not None and len(data) > expected_length:
        logger.debug(f"Detected binary STL with {len(data) - expected_length} trailing byte(s); ignoring them.")
        data = data[:expected_length]
    else:
        raise MeshDecodeError("Input is neither binary nor ASCII STL.")

    if not is_ascii and expected_length == STL_HEADER_BYTES + STL_COUNT_BYTES:
        logger.info("Binary STL declares 0 triangles.")
        return _empty_mesh()

    try:
        loaded = trimesh.load(io.BytesIO(data), file_type="stl", force="mesh", process=False)
    except Exception as e:
        logger.error(f"Trimesh failed to parse STL data: {e}", exc_info=True)
        raise MeshDecodeError(f"Failed to parse STL data: {e}") from e

    if not isinstance(loaded, trimesh.Trimesh):
        raise MeshDecodeError(f"Parsed object is not a triangle mesh ({type(loaded).__name__}).")

    mesh = mesh_from_trimesh(loaded)
    if mesh.triangle_count == 0:
        raise MeshDecodeError("STL facets could not be read.")
    if not np.all(np.isfinite(mesh.vertices)):
        raise MeshDecodeError("Non-finite vertex coordinate.")

    logger.info(f"Decoded mesh: {len(mesh.vertices)} vertices, {mesh.triangle_count} triangles.")
    return mesh


def load_mesh(file_path: str) -> Mesh:
    """
    Loads a mesh from an STL file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        FileFormatError: If the file extension is unsupported.
        MeshDecodeError: If the contents cannot be decoded.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Input file not found: {file_path}")

    file_name = os.path.basename(file_path)
    file_ext = os.path.splitext(file_name)[1].lower()
    if file_ext not in SUPPORTED_EXTENSIONS:
        raise FileFormatError(f"Unsupported file format: '{file_ext}'. Use STL.")

    logger.info(f"Loading mesh from: {file_name}")
    with open(file_path, "rb") as f:
        data = f.read()
    return decode_mesh(data)


def estimate_volume(data: bytes) -> VolumeResult:
    """Decodes STL bytes and computes their volume; decode problems become a failed result."""
    try:
        mesh = decode_mesh(data)
    except MeshDecodeError as e:
        logger.warning(f"{DECODE_FAILURE}: {e}")
        return VolumeResult.failed(f"{DECODE_FAILURE}: {e}")
    return compute_volume_mm3(mesh)


def estimate_volume_from_file(file_path: str) -> VolumeResult:
    """Loads an STL file and computes its volume; any load problem becomes a failed result."""
    try:
        mesh = load_mesh(file_path)
    except (MeshDecodeError, FileFormatError, OSError) as e:
        logger.warning(f"{DECODE_FAILURE} from '{os.path.basename(file_path)}': {e}")
        return VolumeResult.failed(f"{DECODE_FAILURE}: {e}")
    return compute_volume_mm3(mesh)
