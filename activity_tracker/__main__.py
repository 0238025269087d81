from activity_tracker.server import main

main()
