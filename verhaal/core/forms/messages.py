"""User-facing texts shown by the create dialog (Dutch, as on the site)."""

TITLE_REQUIRED = "Titel is verplicht"
BODY_REQUIRED = "Verhaal is verplicht"
CATEGORY_REQUIRED = "Categorie is verplicht"
CATEGORY_INVALID = "Categorie is ongeldig"
NAME_REQUIRED = "Naam is verplicht"

CATEGORIES_UNAVAILABLE = "Kon categorieën niet ophalen"
SAVE_FAILED = "Er is iets misgegaan bij het opslaan"
IMPORT_FAILED = "Er is een fout opgetreden bij het importeren van het Word document"

PDF_PROCESSING = "Word document wordt verwerkt naar PDF..."
PDF_READY = "PDF succesvol gegenereerd!"
PDF_FAILED = "Er is een fout opgetreden bij het genereren van de PDF"
