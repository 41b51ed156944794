"""Authenticity checks run on a citizen's photo before a complaint is created.

Every check runs, so the citizen sees all failures at once. The EXIF check is
advisory and never fails. Read errors in the AI-signature scan let the photo
through.
"""

from io import BytesIO

from PIL import Image, UnidentifiedImageError

from models.validation import ImageChecks, ImageValidationResult, ValidationCheck

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png")
MIN_DIMENSION = 10
MIN_FILE_SIZE = 10
MAX_FILE_SIZE = 20 * 1024 * 1024
EXIF_SCAN_LIMIT = 1000
AI_SCAN_LIMIT = 10000
AI_SIGNATURES = (
    "Midjourney",
    "DALL-E",
    "Stable Diffusion",
    "NovelAI",
    "InvokeAI",
    "AI Generated",
)


def check_file_type(content_type: str) -> ValidationCheck:
    passed = (content_type or "").lower() in ALLOWED_CONTENT_TYPES
    return ValidationCheck(
        passed=passed,
        message="Valid file format" if passed else "Only JPEG and PNG images are allowed",
    )


def check_resolution(data: bytes) -> ValidationCheck:
    try:
        with Image.open(BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
        return ValidationCheck(passed=False, message="Could not read image")

    passed = width >= MIN_DIMENSION and height >= MIN_DIMENSION
    return ValidationCheck(
        passed=passed,
        message=(
            "Sufficient resolution"
            if passed
            else f"Resolution too low ({width}x{height}). Minimum: {MIN_DIMENSION}x{MIN_DIMENSION}"
        ),
    )


def has_exif_marker(data: bytes) -> bool:
    """JPEG SOI marker followed, within the header, by an APP1 segment tagged ``Exif``."""
    if data[:2] != b"\xff\xd8":
        return False
    for i in range(min(len(data) - 1, EXIF_SCAN_LIMIT)):
        if data[i] == 0xFF and data[i + 1] == 0xE1 and data[i + 4 : i + 8] == b"Exif":
            return True
    return False


def check_exif(data: bytes) -> ValidationCheck:
    if has_exif_marker(data):
        return ValidationCheck(passed=True, message="Photo metadata detected")
    return ValidationCheck(passed=True, message="Image accepted")


def check_file_size(size: int) -> ValidationCheck:
    if size < MIN_FILE_SIZE:
        return ValidationCheck(passed=False, message=f"File too small (min {MIN_FILE_SIZE} bytes)")
    if size > MAX_FILE_SIZE:
        return ValidationCheck(passed=False, message="File too large (max 20MB)")
    return ValidationCheck(passed=True, message="File size OK")


def check_not_ai_generated(data: bytes) -> ValidationCheck:
    try:
        header = bytes(data[:AI_SCAN_LIMIT]).decode("latin-1")
    except (TypeError, ValueError):
        return ValidationCheck(passed=True, message="Authentic Photo (Not AI Generated)")

    if any(signature in header for signature in AI_SIGNATURES):
        return ValidationCheck(passed=False, message="AI-generated images are not allowed")
    return ValidationCheck(passed=True, message="Authentic Photo (Not AI Generated)")


def validate_image(data: bytes, content_type: str) -> ImageValidationResult:
    checks = ImageChecks(
        file_type=check_file_type(content_type),
        resolution=check_resolution(data),
        has_exif=check_exif(data),
        file_size=check_file_size(len(data)),
        is_not_ai=check_not_ai_generated(data),
    )
    passed = all(
        check.passed
        for check in (checks.file_type, checks.resolution, checks.file_size, checks.is_not_ai)
    )
    return ImageValidationResult(passed=passed, checks=checks)
