import os


class Config:
    # Flask session signing; only matters if a deployment adds session use
    SECRET_KEY = os.environ.get("AUTHPRO_SECRET_KEY", "authpro-dev-secret")

    # "*" or a comma separated list of origins
    CORS_ORIGINS = os.environ.get("AUTHPRO_CORS_ORIGINS", "*")

    # backups with custom icons can get large
    MAX_CONTENT_LENGTH = int(os.environ.get("AUTHPRO_MAX_CONTENT_LENGTH", 16 * 1024 * 1024))

    LOG_LEVEL = os.environ.get("AUTHPRO_LOG_LEVEL", "INFO")

    # service name -> icon key, used to fill Authenticator.icon on import
    ICONS = {}
