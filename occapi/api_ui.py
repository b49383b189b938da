# occapi/api_ui.py
import os, json, hashlib, binascii, logging
from functools import wraps
from flask import (
    Flask, render_template, request, redirect,
    url_for, session, flash, jsonify, abort
)

from . import entities, formatter, importer, jsonapi, metadata, remote, settings
from .api_client import JsonDataFetcher
from .db import query
from .loader import OccapiDataLoader
from .providers import (
    delete_provider, get_provider, get_providers, save_provider, validate_provider
)
from .schema import ensure_schema
from .store import SharedTempStore
from .tempstore import (
    PARAM_FILTER_ID, PARAM_FILTER_TYPE, PARAM_PROVIDER, PARAM_RESOURCE_ID,
    PARAM_RESOURCE_TYPE, TYPE_COURSE, TYPE_OUNIT, TYPE_PROGRAMME,
    key_from_params, params_from_key, provider_prefix, validate_key
)

logger = logging.getLogger(__name__)

# ─── Permissions ─────────────────────────────────────────────
PERM_PROVIDERS = "administer occapi_provider"
PERM_IMPORT    = "import occapi entities"
PERM_FIELDS    = "administer occapi fields"

ALL_PERMISSIONS = [PERM_PROVIDERS, PERM_IMPORT, PERM_FIELDS]

# ─── Flask config ────────────────────────────────────────────
BASE_DIR = os.path.dirname(__file__)

app = Flask(__name__, template_folder=os.path.join(BASE_DIR, "templates"))
app.secret_key = settings.SECRET_KEY

# ──────────────────────────────────────────────────────────────
# Ensure tables & columns exist
# ──────────────────────────────────────────────────────────────
ensure_schema()

# ─── Utility helpers ─────────────────────────────────────────
def hash_password(password: str) -> str:
    salt = os.urandom(16)
    dk   = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, 200_000)
    return f"{binascii.hexlify(salt).decode()}:{binascii.hexlify(dk).decode()}"

def verify_password(stored: str, pw: str) -> bool:
    try:
        salt_hex, stored_hash = stored.split(":")
        salt = binascii.unhexlify(salt_hex)
    except ValueError:
        return False
    new_hash = hashlib.pbkdf2_hmac("sha256", pw.encode(), salt, 200_000)
    return binascii.hexlify(new_hash).decode() == stored_hash

def parse_permissions(raw: str | None) -> list[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]

def has_permission(permission: str) -> bool:
    return permission in session.get("permissions", [])

def flash_report(report: dict) -> None:
    for category, text in report["messages"]:
        flash(text, category)

def get_loader() -> OccapiDataLoader:
    return OccapiDataLoader(JsonDataFetcher())

def entity_url(entity_type: str, entity_id: int) -> str:
    return url_for(f"{entity_type}_page", entity_id=entity_id)

def resource_url_for(provider_id: str):
    """Link builder for the resources of a provider browsed in the app."""
    def resource_url(resource_type, resource_id):
        if resource_type not in (TYPE_OUNIT, TYPE_PROGRAMME, TYPE_COURSE):
            return "#"
        return url_for("browse_resource", provider_id=provider_id,
                       resource_type=resource_type, resource_id=resource_id)
    return resource_url

@app.context_processor
def _template_helpers():
    return {"has_permission": has_permission, "PERM_FIELDS": PERM_FIELDS,
            "PERM_IMPORT": PERM_IMPORT, "PERM_PROVIDERS": PERM_PROVIDERS}

# ─── Auth decorators ─────────────────────────────────────────
def login_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        if "user_id" not in session:
            return redirect(url_for("login"))
        return f(*args, **kwargs)
    return decorated

def permission_required(permission: str):
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            if not has_permission(permission):
                abort(403)
            return f(*args, **kwargs)
        return decorated
    return decorator

# ──────────────────────────────────────────────────────────────
# ROUTES
# ──────────────────────────────────────────────────────────────

# ---------- Login / Logout --------------------------------------------------
@app.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "POST":
        username = request.form["username"].strip()
        password = request.form["password"]
        rows = query("users", {"username": username})
        if rows and verify_password(rows[0]["password_hash"], password):
            session["user_id"]     = rows[0]["id"]
            session["username"]    = rows[0]["username"]
            session["permissions"] = parse_permissions(rows[0]["permissions"])
            return redirect(url_for("index"))
        flash("Invalid credentials", "danger")
    return render_template("login.html")

@app.route("/logout")
def logout():
    session.clear()
    return redirect(url_for("login"))

# ---------- Home ------------------------------------------------------------
@app.route("/")
@login_required
def index():
    return redirect(url_for("providers"))

# ---------- Providers -------------------------------------------------------
@app.route("/providers")
@permission_required(PERM_PROVIDERS)
def providers():
    return render_template("providers.html", providers=get_providers())

@app.route("/providers/add", methods=["GET", "POST"])
@app.route("/providers/<provider_id>/edit", methods=["GET", "POST"])
@permission_required(PERM_PROVIDERS)
def provider_form(provider_id=None):
    provider = get_provider(provider_id) if provider_id else {}
    if provider_id and not provider:
        abort(404)

    if request.method == "POST":
        data = {
            "id":           provider_id or request.form.get("id", ""),
            "label":        request.form.get("label", ""),
            "base_url":     request.form.get("base_url", ""),
            "hei_id":       request.form.get("hei_id", ""),
            "ounit_filter": bool(request.form.get("ounit_filter")),
            "status":       bool(request.form.get("status")),
            "description":  request.form.get("description", ""),
        }
        errors = validate_provider(data)
        if not provider_id and not errors and get_provider(data["id"].strip()):
            errors.append(f"Provider {data['id']} already exists.")
        if errors:
            for error in errors:
                flash(error, "danger")
            return render_template("provider_form.html", provider=data, is_new=not provider_id), 400

        saved = save_provider(data)
        verb = "updated" if provider_id else "created"
        flash(f"Provider {saved['label']} {verb}.", "success")
        return redirect(url_for("provider_preview", provider_id=saved["id"]))

    return render_template("provider_form.html", provider=provider, is_new=not provider_id)

@app.route("/providers/<provider_id>/delete", methods=["POST"])
@permission_required(PERM_PROVIDERS)
def provider_delete(provider_id):
    if delete_provider(provider_id):
        flash(f"Provider {provider_id} deleted.", "success")
    else:
        flash(f"Provider {provider_id} not found.", "warning")
    return redirect(url_for("providers"))

@app.route("/providers/<provider_id>/preview")
@permission_required(PERM_PROVIDERS)
def provider_preview(provider_id):
    provider = get_provider(provider_id)
    if not provider:
        abort(404)

    loader = get_loader()
    code = loader.fetcher.get_response_code(provider["base_url"])
    if code != 200:
        flash(f"Provider endpoint responded with status {code}.", "warning")

    links = resource_url_for(provider_id)
    hei = loader.load_institution(provider_id) or {}
    tables = []
    if hei:
        tables.append(("Institution", formatter.resource_table(hei)))
    else:
        flash("No institution data available.", "warning")

    if provider["ounit_filter"]:
        tables.append(("Organizational units", formatter.collection_table(loader.load_ounits(provider_id), links)))
    tables.append(("Programmes", formatter.collection_table(loader.load_programmes(provider_id), links)))

    return render_template("table.html", title=provider["label"], provider=provider, tables=tables)

@app.route("/providers/<provider_id>/refresh", methods=["POST"])
@permission_required(PERM_PROVIDERS)
def provider_refresh(provider_id):
    if not get_provider(provider_id):
        abort(404)
    cleared = SharedTempStore().delete_prefix(provider_prefix(provider_id))
    logger.info("Cleared %d cached items for %s", cleared, provider_id)
    flash(f"Cleared {cleared} cached items for {provider_id}.", "info")
    return redirect(url_for("provider_preview", provider_id=provider_id))

@app.route("/occapi/refresh", methods=["POST"])
@permission_required(PERM_PROVIDERS)
def refresh_index():
    stamp = JsonDataFetcher().update_index()
    flash(f"Cached data marked stale as of {stamp}.", "info")
    return redirect(url_for("providers"))

# ---------- Browsing --------------------------------------------------------
def _browse(provider_id, temp_store_key, title):
    provider = get_provider(provider_id)
    if not provider:
        abort(404)

    data = get_loader().load_by_key(temp_store_key)
    params = params_from_key(temp_store_key)

    if params[PARAM_RESOURCE_ID]:
        entity_type = entities.TYPE_ENTITY.get(params[PARAM_RESOURCE_TYPE])
        if entity_type in (entities.ENTITY_PROGRAMME, entities.ENTITY_COURSE):
            table = formatter.field_table(data, entity_type)
        else:
            table = formatter.resource_table(data)
    else:
        table = formatter.collection_table(data, resource_url_for(provider_id))

    if not data:
        flash("No data available.", "warning")

    return render_template(
        "table.html", title=title, provider=provider,
        tables=[(temp_store_key, table)], temp_store_key=temp_store_key, params=params
    )

@app.route("/occapi/<provider_id>/<resource_type>")
@permission_required(PERM_IMPORT)
def browse_collection(provider_id, resource_type):
    if resource_type not in (TYPE_OUNIT, TYPE_PROGRAMME, TYPE_COURSE):
        abort(404)
    key = key_from_params({PARAM_PROVIDER: provider_id, PARAM_RESOURCE_TYPE: resource_type})
    return _browse(provider_id, key, f"{resource_type} collection")

@app.route("/occapi/<provider_id>/<filter_type>/<filter_id>/<resource_type>")
@permission_required(PERM_IMPORT)
def browse_filtered(provider_id, filter_type, filter_id, resource_type):
    key = key_from_params({
        PARAM_PROVIDER: provider_id,
        PARAM_FILTER_TYPE: filter_type,
        PARAM_FILTER_ID: filter_id,
        PARAM_RESOURCE_TYPE: resource_type,
    })
    if validate_key(key):
        abort(404)
    return _browse(provider_id, key, f"{resource_type} of {filter_type} {filter_id}")

@app.route("/occapi/<provider_id>/<resource_type>/<resource_id>")
@permission_required(PERM_IMPORT)
def browse_resource(provider_id, resource_type, resource_id):
    if resource_type not in (TYPE_OUNIT, TYPE_PROGRAMME, TYPE_COURSE):
        abort(404)
    key = key_from_params({
        PARAM_PROVIDER: provider_id,
        PARAM_RESOURCE_TYPE: resource_type,
        PARAM_RESOURCE_ID: resource_id,
    })
    return _browse(provider_id, key, f"{resource_type} {resource_id}")

# ---------- Import ----------------------------------------------------------
@app.route("/import/institution/<provider_id>", methods=["POST"])
@permission_required(PERM_IMPORT)
def import_institution(provider_id):
    flash_report(importer.import_institution(provider_id, get_loader()))
    return redirect(url_for("provider_preview", provider_id=provider_id))

@app.route("/import/ounits/<provider_id>", methods=["POST"])
@permission_required(PERM_IMPORT)
def import_ounits(provider_id):
    flash_report(importer.import_ounits(provider_id, get_loader()))
    return redirect(url_for("provider_preview", provider_id=provider_id))

@app.route("/import/programme", methods=["POST"])
@permission_required(PERM_IMPORT)
def import_programme():
    report = importer.import_programme(request.form.get("key", ""), get_loader())
    flash_report(report)
    programme_ids = report["created"] or report["existing"]
    if programme_ids:
        return redirect(entity_url(entities.ENTITY_PROGRAMME, programme_ids[0]))
    return redirect(request.referrer or url_for("providers"))

@app.route("/import/courses", methods=["POST"])
@permission_required(PERM_IMPORT)
def import_courses():
    flash_report(importer.import_courses(request.form.get("key", ""), get_loader()))
    return redirect(request.referrer or url_for("providers"))

# ---------- Entities --------------------------------------------------------
@app.route("/programme/<int:entity_id>")
@login_required
def programme_page(entity_id):
    programme = entities.load_entity(entities.ENTITY_PROGRAMME, entity_id)
    if not programme:
        abort(404)

    courses = metadata.related_courses(programme)
    meta = metadata.get_meta_by_programme(programme, courses)

    return render_template(
        "entity.html",
        entity=programme,
        entity_type=entities.ENTITY_PROGRAMME,
        remote_id=remote.format_remote_id(programme.get("remote_id"), programme.get("remote_url")),
        table=metadata.meta_table(meta, entities.ENTITY_COURSE, entity_url),
    )

@app.route("/course/<int:entity_id>")
@login_required
def course_page(entity_id):
    course = entities.load_entity(entities.ENTITY_COURSE, entity_id)
    if not course:
        abort(404)

    programmes = metadata.related_programmes(course)
    meta = metadata.get_meta_by_course(course, programmes)

    return render_template(
        "entity.html",
        entity=course,
        entity_type=entities.ENTITY_COURSE,
        remote_id=remote.format_remote_id(course.get("remote_id"), course.get("remote_url")),
        table=metadata.meta_table(meta, entities.ENTITY_PROGRAMME, entity_url),
    )

@app.route("/course/<int:entity_id>/extended")
@login_required
def course_extended(entity_id):
    course = entities.load_entity(entities.ENTITY_COURSE, entity_id)
    if not course:
        abort(404)

    refresh = request.args.get("refresh") == "1"
    resource = remote.load_external_course(course, refresh=refresh, loader=get_loader())
    if refresh:
        flash("Extended data refreshed.", "info")

    return render_template(
        "course_extended.html",
        entity=course,
        remote_id=remote.format_remote_id(course.get("remote_id"), course.get("remote_url")),
        extra_fields=remote.extra_course_fields(resource),
    )

# ---------- Remote API fields ----------------------------------------------
@app.route("/<any(programme, course):entity_type>/<int:entity_id>/api", methods=["POST"])
@permission_required(PERM_FIELDS)
def api_fields(entity_type, entity_id):
    entity = entities.load_entity(entity_type, entity_id)
    if not entity:
        abort(404)

    values = {
        entities.FIELD_REMOTE_ID:  request.form.get(entities.FIELD_REMOTE_ID, "").strip(),
        entities.FIELD_REMOTE_URL: request.form.get(entities.FIELD_REMOTE_URL, "").strip(),
    }
    if entity_type == entities.ENTITY_COURSE and entities.FIELD_META in request.form:
        raw = request.form[entities.FIELD_META].strip()
        try:
            values[entities.FIELD_META] = json.loads(raw) if raw else None
        except ValueError:
            flash("Metadata must be valid JSON.", "danger")
            return redirect(entity_url(entity_type, entity_id))

    entities.update_fields(entity_type, entity_id, values)
    flash("API fields saved.", "success")
    return redirect(entity_url(entity_type, entity_id))

# ---------- API: cached OCCAPI data ----------------------------------------
@app.route("/api/providers", methods=["GET"])
@login_required
def api_providers():
    return jsonify(list(get_providers(enabled_only=True).values()))

@app.route("/api/occapi/<path:temp_store_key>", methods=["GET"])
@login_required
def api_occapi(temp_store_key):
    error = validate_key(temp_store_key, single=bool(params_from_key(temp_store_key)[PARAM_RESOURCE_ID]))
    if error:
        return jsonify({"error": error}), 400

    data = get_loader().load_by_key(temp_store_key)
    if not data:
        return jsonify({"error": f"No data for {temp_store_key}"}), 404

    titles = jsonapi.get_resource_titles(data) if isinstance(data.get(jsonapi.DATA_KEY), list) else None
    return jsonify({"key": temp_store_key, "titles": titles, "document": data})

# ───────────────────────────────────────────────────────────────
if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT, datefmt=settings.LOG_DATEFMT)
    app.run(debug=True)   # auto-reload in development
