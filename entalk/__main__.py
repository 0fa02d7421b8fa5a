from entalk.cli.main import main

main()
