import logging
import os
import sys

from PySide6.QtWidgets import QApplication

from ui.main_window import MainWindow


def _setup_logging() -> None:
    level_name = os.environ.get("PIXELSTRETCH_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> int:
    _setup_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("PixelStretch")
    app.setOrganizationName("PixelStretch")

    w = MainWindow()
    w.show()
    if len(sys.argv) > 1:
        w.load_path(sys.argv[1])
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
