# QR Roster System Configuration

import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent.absolute()

LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'


class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'qr-roster-secret-key-2025'
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1MB max request size

    # Storage Configuration
    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND') or 'file'  # 'file' or 'memory'
    DATA_FILE = Path(os.environ.get('DATA_FILE') or BASE_DIR / 'data' / 'students.json')

    # QR Code Configuration
    QR_STORAGE = os.environ.get('QR_STORAGE') or 'file'  # 'file' or 'inline'
    QR_CODES_FOLDER = Path(os.environ.get('QR_CODES_FOLDER') or BASE_DIR / 'public' / 'qr-codes')
    QR_CODE_WIDTH = 256
    QR_CODE_BORDER = 2
    QR_CODE_ERROR_CORRECT = 'M'  # Medium error correction
    QR_CODE_FILL_COLOR = os.environ.get('QR_CODE_FILL_COLOR') or 'black'
    QR_CODE_BACK_COLOR = os.environ.get('QR_CODE_BACK_COLOR') or 'white'

    # Public origin used in check-in URLs; the QR generator falls back to
    # http://localhost:5000 when this is unset
    PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL')

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'
    LOG_FILE = BASE_DIR / 'logs' / 'roster.log'
    LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT = 5

    # Development Configuration
    DEBUG = os.environ.get('DEBUG', 'False').lower() in ['true', 'on', '1']
    TESTING = False

    @staticmethod
    def init_app(app):
        """Initialize application configuration"""
        # Create necessary directories
        directories = []
        if app.config['STORAGE_BACKEND'] == 'file':
            directories.append(Path(app.config['DATA_FILE']).parent)
        if app.config['QR_STORAGE'] == 'file':
            directories.append(Path(app.config['QR_CODES_FOLDER']))

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False

    # More verbose logging
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True

    # Keep everything in memory for testing
    STORAGE_BACKEND = 'memory'
    QR_STORAGE = 'inline'
    PUBLIC_BASE_URL = 'http://testserver'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Production logging
    LOG_LEVEL = 'WARNING'

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        # Production-specific initialization
        import logging
        from logging.handlers import RotatingFileHandler

        # Setup file logging
        if not app.debug:
            log_file = Path(app.config['LOG_FILE'])
            log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=app.config['LOG_MAX_BYTES'],
                backupCount=app.config['LOG_BACKUP_COUNT']
            )
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            file_handler.setLevel(logging.INFO)
            app.logger.addHandler(file_handler)

            app.logger.setLevel(logging.INFO)
            app.logger.info('QR Roster System startup')


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


class QRCodeConfig:
    """QR Code specific configuration"""

    # Error correction levels as qrcode.constants values
    ERROR_CORRECT = {
        'L': 1,  # ~7% error correction
        'M': 0,  # ~15% error correction (default)
        'Q': 3,  # ~25% error correction
        'H': 2   # ~30% error correction
    }

    # QR Code styling
    FILL_COLOR = "black"
    BACK_COLOR = "white"


def get_qr_settings(settings):
    """Build QR generator rendering settings from an application config mapping"""
    return {
        'error_correction': QRCodeConfig.ERROR_CORRECT[settings['QR_CODE_ERROR_CORRECT']],
        'width': settings['QR_CODE_WIDTH'],
        'border': settings['QR_CODE_BORDER'],
        'fill_color': settings.get('QR_CODE_FILL_COLOR') or QRCodeConfig.FILL_COLOR,
        'back_color': settings.get('QR_CODE_BACK_COLOR') or QRCodeConfig.BACK_COLOR
    }


# Environment-specific configurations
def get_config():
    """Get configuration based on environment variable"""
    return config.get(os.environ.get('FLASK_ENV', 'default'), DevelopmentConfig)


# Validation functions
def validate_config(settings):
    """Validate configuration settings"""
    errors = []

    if settings['STORAGE_BACKEND'] not in ('file', 'memory'):
        errors.append(f"STORAGE_BACKEND must be 'file' or 'memory', got {settings['STORAGE_BACKEND']!r}")

    if settings['QR_STORAGE'] not in ('file', 'inline'):
        errors.append(f"QR_STORAGE must be 'file' or 'inline', got {settings['QR_STORAGE']!r}")

    if settings['QR_CODE_ERROR_CORRECT'] not in QRCodeConfig.ERROR_CORRECT:
        errors.append(f"Unknown QR error correction level: {settings['QR_CODE_ERROR_CORRECT']}")

    if not isinstance(settings['QR_CODE_WIDTH'], int) or settings['QR_CODE_WIDTH'] <= 0:
        errors.append("QR_CODE_WIDTH must be a positive integer")

    base_url = settings.get('PUBLIC_BASE_URL')
    if base_url and not base_url.startswith(('http://', 'https://')):
        errors.append(f"PUBLIC_BASE_URL must start with http:// or https://, got {base_url}")

    return errors


# Initialize configuration
def init_config(app, config_name=None, overrides=None):
    """Initialize application with configuration"""
    if config_name is None:
        config_class = get_config()
    else:
        config_class = config.get(config_name, DevelopmentConfig)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    # Validate configuration
    errors = validate_config(app.config)
    if errors:
        for error in errors:
            app.logger.error(f"Configuration error: {error}")
        raise RuntimeError("Configuration validation failed")

    config_class.init_app(app)
    return config_class
