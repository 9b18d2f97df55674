from scp_password.cli import main

main()
