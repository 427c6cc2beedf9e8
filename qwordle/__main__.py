from qwordle.game import main

main()
