from ckbuilder.cli import main

raise SystemExit(main())
