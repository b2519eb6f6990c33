from taskboard.cli import main

main()
