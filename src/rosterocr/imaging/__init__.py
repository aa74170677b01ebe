from .preprocess import (
    PreprocessedImage,
    preprocess_image,
    preprocessed_variants,
    preprocessed_variants_async,
)

__all__ = [
    "PreprocessedImage",
    "preprocess_image",
    "preprocessed_variants",
    "preprocessed_variants_async",
]
