from logger import install_excepthook

install_excepthook()

from ui import main

if __name__ == "__main__":
    main()
