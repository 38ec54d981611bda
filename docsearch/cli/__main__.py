"""Allow ``python -m docsearch.cli`` execution."""

from docsearch.cli.manage import main

main()
