from . import admin, auth, cart, catalog, content, engagement, pages, reviews

ROUTE_MODULES = (auth, catalog, reviews, content, engagement, cart, admin, pages)


def register_routes(app, store, ratings):
    for module in ROUTE_MODULES:
        module.register(app, store, ratings)
