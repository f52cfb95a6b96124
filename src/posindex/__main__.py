from posindex.cli import main

raise SystemExit(main())
