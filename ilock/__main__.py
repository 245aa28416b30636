from ilock.cli.main import main

main()
