import sys

from quickhelp.demo import run


if __name__ == "__main__":
    sys.exit(run(sys.argv))
