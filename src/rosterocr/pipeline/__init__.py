from .service import (
    InvalidUploadError,
    UploadCanceled,
    UploadOutcome,
    process_upload,
    run_extraction_pass,
    run_upload_job,
)

__all__ = [
    "InvalidUploadError",
    "UploadCanceled",
    "UploadOutcome",
    "process_upload",
    "run_extraction_pass",
    "run_upload_job",
]
