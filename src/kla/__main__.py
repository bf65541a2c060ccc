from kla.app import main

main()
