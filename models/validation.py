from models.base import CamelModel
from models.complaint import ImageChecksSnapshot, ImageValidationSnapshot


class ValidationCheck(CamelModel):
    passed: bool
    message: str


class ImageChecks(CamelModel):
    file_type: ValidationCheck
    resolution: ValidationCheck
    has_exif: ValidationCheck
    file_size: ValidationCheck
    is_not_ai: ValidationCheck


# Full validator output shown to the citizen before submitting
class ImageValidationResult(CamelModel):
    passed: bool
    checks: ImageChecks

    def failures(self) -> dict:
        return {
            name: check["message"]
            for name, check in self.checks.model_dump(by_alias=True).items()
            if not check["passed"]
        }

    def snapshot(self) -> ImageValidationSnapshot:
        return ImageValidationSnapshot(
            passed=self.passed,
            checks=ImageChecksSnapshot(
                file_type=self.checks.file_type.passed,
                resolution=self.checks.resolution.passed,
                has_exif=self.checks.has_exif.passed,
                file_size=self.checks.file_size.passed,
                is_not_ai=self.checks.is_not_ai.passed,
            ),
        )
