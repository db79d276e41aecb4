from statement_ledger.ledger import main

main()
