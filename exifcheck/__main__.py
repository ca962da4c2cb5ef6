from exifcheck.cli import main

main()
