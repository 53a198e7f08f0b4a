"""Run the stencil command line: python -m stencil"""

from stencil.cli import main

if __name__ == "__main__":
    main()
