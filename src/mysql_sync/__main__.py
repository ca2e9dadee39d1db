from mysql_sync.cli import main

main()
