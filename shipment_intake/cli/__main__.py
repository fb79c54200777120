"""Allow ``python -m shipment_intake.cli`` execution."""

from shipment_intake.cli.intake import main

main()
