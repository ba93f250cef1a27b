from depfetch.cli import main

main()
