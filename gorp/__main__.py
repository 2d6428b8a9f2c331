from gorp.app import main

main()
