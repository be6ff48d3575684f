"""Application-wide constants."""

APP_NAME = "DecalStudio"
APP_VERSION = "0.1.0"
ORG_NAME = "DecalStudio"
ORG_DOMAIN = "decalstudio.org"

# Preset document schema
PRESET_SCHEMA_VERSION = "2.0"
# Presets without any version field predate versioning
LEGACY_SCHEMA_VERSION = "1.0"

# Persistence key for the saved preset list
PRESETS_SETTINGS_KEY = "clothingPresets"

# Layer defaults
DEFAULT_LAYER_POSITION = (0.0, 0.0, 0.3)
DEFAULT_LAYER_ROTATION = (0.0, 0.0, 0.0)
DEFAULT_LAYER_SCALE = (0.3, 0.3, 0.3)
DEFAULT_LAYER_OPACITY = 1.0
DEFAULT_BLEND_MODE = "normal"
DEFAULT_TARGET_SURFACE_IDS = (0,)
DUPLICATE_NAME_SUFFIX = " (Copy)"
SOURCE_ID_PREFIX = "src_"

# Border radius (percentage of half the side length)
BORDER_RADIUS_MIN = 0
BORDER_RADIUS_MAX = 50

# Crop formats
CROP_FORMAT_NATURAL = "natural"

# Legacy display-space crops: the editor showed images fitted into this box
LEGACY_DISPLAY_MAX_WIDTH = 800
LEGACY_DISPLAY_MAX_HEIGHT = 600
# Growth applied to the estimated box when a crop extends past it
LEGACY_DISPLAY_OVERSHOOT = 1.05

# Composition worker pool
COMPOSE_MAX_WORKERS = 4

# Encoded texture format
TEXTURE_FORMAT = "PNG"
