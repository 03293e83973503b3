# module storefront.app
from storefront.app_setup.factory import create_app

# App globale (services construits au démarrage par le lifespan)
app = create_app()
