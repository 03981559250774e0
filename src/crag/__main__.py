from crag.cli import main

main()
