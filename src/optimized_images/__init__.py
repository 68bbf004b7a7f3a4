from .config import GeneralConfig, eager_transforms, get_general_config, load_general_config, load_variants
from .errors import (
    ConfigurationError,
    OptimizedImagesError,
    TransformFailure,
    TransformUnavailable,
    TransformUnsupported,
)
from .fields.optimized_images import DEFAULT_VARIANTS, AssetElement, OptimizedImagesField
from .media.asset import AssetRef, ImageAsset
from .media.codec import ImageCodecGateway, PillowCodecGateway
from .media.downloader import ImageDownloader
from .models import OptimizedImageResult, TransformJob, VariantSpec, validate_variants
from .transforms.generator import VariantGenerator
from .transforms.planner import TransformPlanner

__all__ = [
    "AssetElement",
    "AssetRef",
    "ConfigurationError",
    "DEFAULT_VARIANTS",
    "GeneralConfig",
    "ImageAsset",
    "ImageCodecGateway",
    "ImageDownloader",
    "OptimizedImageResult",
    "OptimizedImagesError",
    "OptimizedImagesField",
    "PillowCodecGateway",
    "TransformFailure",
    "TransformJob",
    "TransformPlanner",
    "TransformUnavailable",
    "TransformUnsupported",
    "VariantGenerator",
    "VariantSpec",
    "eager_transforms",
    "get_general_config",
    "load_general_config",
    "load_variants",
    "validate_variants",
]
