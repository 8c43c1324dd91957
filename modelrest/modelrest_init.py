import logging
import os
import sys


class MODELREST:
    """Configuration settings are stored as class variables

    They can be overridden with environment variables of the same name,
    cfr. modelrest.config.get_config
    """

    # common prefix of all model routes, eg. /api/users
    URL_PREFIX = "/api"
    # expose GET aliases for mutating operations (/api/users/create, /api/users/remove/<uuid>, ...)
    CONVENIENCE_ROUTES = False
    # "common": CORS header on every request below URL_PREFIX
    # "model": CORS header only when the addressed model may be exposed
    # "none": no CORS header at all
    CORS_MODE = "model"
    LOGLEVEL = logging.WARNING
    # path of a yaml file with model definitions, used by the demo app
    MODEL_DEFINITIONS = None

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Specify the log format used in the webserver logs
        The webserver will catch stdout so we redirect eveything to sys.stderr
        """
        log = logging.getLogger("modelrest")
        if log.level == logging.NOTSET:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            log.setLevel(loglevel)
            log.addHandler(handler)
        return log


#
# logging initialization
#
try:
    DEBUG = os.getenv("DEBUG", logging.WARNING)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = MODELREST.init_logging(LOGLEVEL)
