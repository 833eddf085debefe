import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

LOG_FILE = os.getenv("LOG_FILE", "./logger/log.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG").upper()


class CustomExtraLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the acting mitra/driver/user when known"""

    def process(self, msg, kwargs):
        actor = kwargs.pop("extra", self.extra["extra"])
        if not actor:
            return msg, kwargs
        if isinstance(actor, dict) and "actor_id" in actor:
            actor = "%s:%s" % (actor.get("actor_type"), actor["actor_id"])
        return "[%s] %s" % (actor, msg), kwargs


def get_logger(name, level=LOG_LEVEL) -> logging.LoggerAdapter:

    FORMAT = "[%(levelname)s  %(name)s %(module)s:%(lineno)s - %(funcName)s() - %(asctime)s]\n\t %(message)s \n"
    TIME_FORMAT = "%d.%m.%Y %I:%M:%S %p"

    logging.basicConfig(
        format=FORMAT, datefmt=TIME_FORMAT, level=level, filename=LOG_FILE
    )

    logger_instance = logging.getLogger(name)

    # module can be re-imported by the test runner
    if not logger_instance.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        logger_instance.addHandler(handler)

    return CustomExtraLogAdapter(logger_instance, {"extra": None})


logger = get_logger("treksistem")
