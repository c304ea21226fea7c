from taskmake.cli import main

main()
