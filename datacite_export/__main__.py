from datacite_export.main import main

main()
