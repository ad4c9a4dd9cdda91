# main.py

from gui.merger_gui import MergerGUI
from listmerge.config import configure_logging
from listmerge.headers import load_header_catalog


def main():
    configure_logging()
    # Create and launch the GUI with the catalog loaded once for all jobs
    app = MergerGUI(catalog=load_header_catalog())
    app.run()


if __name__ == "__main__":
    main()
