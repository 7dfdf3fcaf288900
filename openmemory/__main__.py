from openmemory.server.main import main

main()
