import logging
import pytest


@pytest.fixture(autouse=True)
def restore_root_logger():
    """cli.main() installs a console handler on the root logger; drop it afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
