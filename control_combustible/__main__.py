from control_combustible.entrypoints.cli import main

raise SystemExit(main())
