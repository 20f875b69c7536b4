from request_jit.cli import main

main()
