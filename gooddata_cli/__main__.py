from gooddata_cli.cli import main

main()
