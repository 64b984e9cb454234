"""
Fixed quotas for product media. These are product rules, not deployment
settings, so they are deliberately absent from Django settings.
"""

KIB = 1024
MIB = 1024 * KIB

# Максимум изображений на товар (уже сохранённые + отслеживаемые задачи)
MAX_IMAGES_PER_PRODUCT = 6
MAX_VIDEO_BYTES = 100 * MIB

# Оптимизация изображений перед отправкой
OPTIMIZE_THRESHOLD_BYTES = 500 * KIB
OPTIMIZE_MAX_DIMENSION = 1200
OPTIMIZE_QUALITY = 0.8
OPTIMIZE_TARGET_BYTES = 1 * MIB
OPTIMIZE_MIN_QUALITY = 0.5
OPTIMIZE_QUALITY_STEP = 0.1
OPTIMIZE_FORMAT = 'JPEG'

IMAGE_KEY_PREFIX = 'products'
VIDEO_KEY_PREFIX = 'products/videos'

KIND_IMAGE = 'image'
KIND_VIDEO = 'video'
