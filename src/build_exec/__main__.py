"""build-exec 入口点。

支持: python -m build_exec
"""

from .app import main

if __name__ == "__main__":
    main()
