"""Logger colorido com o nível PROCESS para etapas de ciclo de vida."""
import logging

from colorama import Fore, Style, init

init(autoreset=True)

PROCESS_LEVEL = 25  # entre INFO e WARNING
logging.addLevelName(PROCESS_LEVEL, "PROCESS")


def process(self, message, *args, **kwargs):
    if self.isEnabledFor(PROCESS_LEVEL):
        self._log(PROCESS_LEVEL, message, args, **kwargs)


logging.Logger.process = process

NOISY_LOGGERS = (
    "werkzeug",
    "schedule",
    "simple_websocket",
    "urllib3",
)
SQLALCHEMY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


class ColorFormatter(logging.Formatter):
    COLORS = {
        "PROCESS": Fore.CYAN,
        "DEBUG": Fore.BLUE,
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.MAGENTA,
    }
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def format(self, record):
        color = self.COLORS.get(record.levelname, Fore.WHITE)
        fmt = f"[%(asctime)s] {record.levelname:<8} [%(threadName)s] %(message)s"
        return color + logging.Formatter(fmt, self.DATE_FORMAT).format(record) + Style.RESET_ALL


def _mute(name, level):
    named = logging.getLogger(name)
    named.setLevel(level)
    named.propagate = False


def setup_logger(root_level=logging.INFO, silence_names=None, show_sqlalchemy_warning=True):
    """
    Configura o root logger colorido.

    :param root_level: nível do root logger
    :param silence_names: loggers extras que só mostram ERROR
    :param show_sqlalchemy_warning: mantém WARNING do engine/pool do SQLAlchemy
    """
    root = logging.getLogger()
    root.setLevel(root_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(ColorFormatter())
    root.addHandler(handler)

    sqlalchemy_level = logging.WARNING if show_sqlalchemy_warning else logging.ERROR
    for name in SQLALCHEMY_LOGGERS:
        _mute(name, sqlalchemy_level)
    for name in (*NOISY_LOGGERS, *(silence_names or ())):
        _mute(name, logging.ERROR)

    logging.getLogger("sqlalchemy").setLevel(logging.CRITICAL)
    return root


logger = setup_logger()
