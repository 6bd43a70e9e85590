from lixian.cli import main

main()
