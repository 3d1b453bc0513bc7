from urllib.parse import urlsplit

from flask import abort, g, render_template, request

from .admin import collect_analytics

ADMIN_SECTIONS = {
    "products": "Products",
    "orders": "Orders",
    "customers": "Customers",
    "reviews": "Reviews",
    "banners": "Banners",
    "testimonials": "Testimonials",
    "newsletter": "Newsletter",
    "contacts": "Contact messages",
}


def local_redirect_target(value) -> str:
    """``value`` if it is a same-origin path, ``"/"`` otherwise."""
    target = str(value or "").strip()
    # Browsers read a backslash as a slash, so "/\host" means "//host".
    parts = urlsplit(target.replace("\\", "/"))
    if not target.startswith("/") or parts.scheme or parts.netloc:
        return "/"
    return target


def register(app, store, ratings):
    @app.route("/")
    def storefront_home():
        return render_template("index.html", error=request.args.get("error"))

    @app.route("/login")
    def login_page():
        return render_template(
            "login.html", redirect_to=local_redirect_target(request.args.get("redirect"))
        )

    # /admin pages are guarded by the before_request hook in admin_gate,
    # which leaves the verified identity on g.admin.

    @app.route("/admin")
    def admin_dashboard():
        return render_template(
            "admin/dashboard.html",
            admin=g.admin,
            sections=ADMIN_SECTIONS,
            analytics=collect_analytics(store),
        )

    @app.route("/admin/<section>")
    def admin_section(section: str):
        if section not in ADMIN_SECTIONS:
            abort(404)
        return render_template(
            "admin/section.html",
            admin=g.admin,
            sections=ADMIN_SECTIONS,
            section=section,
            title=ADMIN_SECTIONS[section],
        )
