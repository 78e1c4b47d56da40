import os
import logging
from datetime import datetime

from werkzeug.utils import secure_filename
from sqlalchemy.exc import SQLAlchemyError

from flask import (
    Flask, render_template, request, redirect,
    url_for, abort, session, current_app
)
from flask_login import (
    LoginManager, login_user,
    login_required, logout_user, current_user
)

import auth
import notices
import policy
import store
from config import Config
from errors import DuplicateKey, InvalidCredentials, NotFound, ValidationError
from forms import (
    ForgotPasswordForm, LoginForm, ProfileForm, RegisterForm,
    ReviewForm, SearchArgs, parse_form
)
from models import db
from reviews import compute_rating_summary, submit_review
from search import OTHER_CATEGORY, distinct_categories, normalize_category, search
from sessions import StoreSessionInterface, make_store

# =========================================================
# BRANDING
# =========================================================
APP_NAME = "Local Pros - Find Trusted Service Providers"

GENERIC_RESET_MESSAGE = "If an account exists for this email, a password reset link has been sent."

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

logger = logging.getLogger(__name__)

login_manager = LoginManager()
login_manager.login_view = "login"
login_manager.login_message = "You must be logged in to access that page."
login_manager.login_message_category = notices.ERROR


# =========================================================
# UPLOADS
# =========================================================
def allowed_file(filename: str) -> bool:
    if not filename:
        return False
    _, ext = os.path.splitext(filename.lower())
    return ext in ALLOWED_EXTENSIONS


def save_profile_pic(file_storage, account_id) -> str:
    """Store an uploaded picture and return its public URI ("" if rejected)."""
    if not file_storage or not getattr(file_storage, "filename", ""):
        return ""
    original = secure_filename(file_storage.filename)
    if not original or not allowed_file(original):
        return ""
    _, ext = os.path.splitext(original.lower())
    stored = f"provider_{account_id}_{int(datetime.now().timestamp())}{ext}"
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    file_storage.save(os.path.join(folder, stored))
    return url_for("static", filename=f"uploads/{stored}")


def uploaded_picture():
    file = request.files.get("profile_picture")
    if not file or not file.filename:
        return None
    return file


# =========================================================
# SESSION HELPERS
# =========================================================
def start_session(account):
    current_app.session_interface.regenerate(session._get_current_object())
    session.permanent = True
    login_user(account)
    session["role"] = account.role


def invalidate_session(reason: str):
    logger.warning("Invalidating session for account %s: %s", session.get("_user_id"), reason)
    logout_user()
    session.clear()


@login_manager.user_loader
def load_user(user_id):
    account = store.find_by_id(user_id)
    if account is None:
        # logout_user() would re-enter this loader
        logger.warning("Invalidating session for missing account %s", user_id)
        session.clear()
    return account


def own_account():
    """The session's account, re-read from storage."""
    account = store.find_by_id(current_user.get_id())
    if account is None:
        raise NotFound("Session account not found.")
    return account


def stale_session_redirect():
    invalidate_session("account not found")
    notices.error("Your session has expired. Please log in again.")
    return redirect(url_for("login"))


# =========================================================
# ROUTES
# =========================================================
def register_routes(app):

    @app.context_processor
    def inject_globals():
        return {
            "APP_NAME": APP_NAME,
            "BASE_CATEGORIES": app.config["BASE_CATEGORIES"],
            "OTHER_CATEGORY": OTHER_CATEGORY,
            "notices": notices.pop_all(),
            "is_logged_in": current_user.is_authenticated,
        }

    @app.route("/")
    def index():
        return render_template("index.html", title="Home")

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    # -----------------------------
    # AUTH
    # -----------------------------
    @app.route("/register", methods=["GET", "POST"])
    def register():
        if current_user.is_authenticated:
            return redirect(url_for("provider_profile"))

        if request.method == "POST":
            try:
                form = parse_form(RegisterForm, request.form)
                account = auth.register_provider(form)
            except ValidationError as e:
                notices.error(str(e))
                return redirect(url_for("register"))
            except DuplicateKey:
                notices.error("Registration failed. Email may already be in use.")
                return redirect(url_for("register"))

            picture = uploaded_picture()
            if picture is not None:
                uri = save_profile_pic(picture, account.id)
                if uri:
                    store.update_by_id(account.id, profile_picture_uri=uri)
                else:
                    notices.error("Image not accepted. Use PNG/JPG/JPEG/WEBP (up to 4MB).")

            start_session(account)
            notices.success("Account created! Your 7-day free trial has started.")
            return redirect(url_for("provider_profile"))

        return render_template("register.html", title="Register as Provider")

    @app.route("/login", methods=["GET", "POST"])
    def login():
        if current_user.is_authenticated:
            return redirect(url_for("provider_profile"))

        if request.method == "POST":
            try:
                form = parse_form(LoginForm, request.form)
                account = auth.verify_credentials(form.email, form.password)
            except (ValidationError, InvalidCredentials):
                notices.error("Invalid email or password.")
                return redirect(url_for("login"))

            start_session(account)
            notices.success("Welcome back!")
            return redirect(url_for("provider_profile"))

        return render_template("login.html", title="Provider Login")

    @app.route("/logout")
    def logout():
        logout_user()
        session.clear()
        notices.success("You have been logged out.")
        return redirect(url_for("index"))

    @app.route("/forgot-password", methods=["GET", "POST"])
    def forgot_password():
        if request.method == "POST":
            try:
                form = parse_form(ForgotPasswordForm, request.form)
            except ValidationError:
                form = ForgotPasswordForm()
            if form.email and store.find_by_email(form.email):
                # TODO: send the reset link once outbound email is configured
                logger.info("Password reset requested for account %s", form.email.lower())
            notices.success(GENERIC_RESET_MESSAGE)
            return redirect(url_for("forgot_password"))

        return render_template("forgot_password.html", title="Forgot Password")

    # -----------------------------
    # PROVIDER DASHBOARD
    # -----------------------------
    @app.get("/provider/profile")
    @login_required
    def provider_profile():
        try:
            account = own_account()
        except NotFound:
            return stale_session_redirect()

        return render_template(
            "provider/profile.html",
            title="My Dashboard",
            provider=account,
            is_trial_active=policy.is_trial_active(account),
            days_left=policy.days_left(account),
            summary=compute_rating_summary(account),
        )

    @app.get("/provider/edit")
    @login_required
    def edit_profile():
        try:
            account = own_account()
        except NotFound:
            return stale_session_redirect()

        return render_template(
            "provider/edit_profile.html",
            title="Edit Profile",
            provider=account,
            current_category=account.category,
        )

    @app.post("/provider/edit", endpoint="update_profile")
    @app.post("/provider/profile", endpoint="update_profile_alias")
    @login_required
    def update_profile():
        try:
            form = parse_form(ProfileForm, request.form)
            category = normalize_category(form.category, form.new_category)
        except ValidationError as e:
            notices.error(str(e))
            return redirect(url_for("edit_profile"))

        fields = {
            "name": form.name,
            "category": category,
            "contact_info": form.contact_info,
            "description": form.description,
            "sample_work": form.sample_work,
        }

        picture = uploaded_picture()
        if picture is not None:
            uri = save_profile_pic(picture, current_user.get_id())
            if not uri:
                notices.error("Image not accepted. Use PNG/JPG/JPEG/WEBP (up to 4MB).")
                return redirect(url_for("edit_profile"))
            fields["profile_picture_uri"] = uri

        try:
            store.update_by_id(current_user.get_id(), **fields)
        except NotFound:
            return stale_session_redirect()

        notices.success("Profile updated successfully!")
        return redirect(url_for("provider_profile"))

    # -----------------------------
    # SUBSCRIPTION
    # -----------------------------
    @app.get("/subscribe")
    @login_required
    def subscribe():
        try:
            account = own_account()
        except NotFound:
            return stale_session_redirect()

        return render_template(
            "subscribe.html",
            title="Subscribe & Pay",
            provider=account,
            is_trial_active=policy.is_trial_active(account),
            days_left=policy.days_left(account),
        )

    @app.post("/subscribe/activate")
    @login_required
    def activate_subscription():
        try:
            policy.activate_subscription(current_user.get_id())
        except NotFound:
            return stale_session_redirect()

        notices.success("Subscription activated! Your profile is now visible in search results.")
        return redirect(url_for("provider_profile"))

    # -----------------------------
    # SEARCH & PUBLIC PROFILE
    # -----------------------------
    @app.get("/search")
    def search_providers():
        args = parse_form(SearchArgs, request.args)
        providers = search(text=args.query, category=args.category)
        return render_template(
            "search_results.html",
            title="Search Results",
            providers=[(p, compute_rating_summary(p)) for p in providers],
            unique_categories=distinct_categories(app.config["BASE_CATEGORIES"]),
            query=args.query,
            selected_category=args.category,
        )

    @app.get("/provider/view/<int:account_id>")
    @app.get("/provider/profile/<int:account_id>", endpoint="public_profile_alias")
    def public_profile(account_id):
        account = store.find_by_id(account_id)
        if account is None or not account.is_provider or not account.is_subscribed:
            abort(404)

        return render_template(
            "public_profile.html",
            title=f"{account.name}'s Profile",
            provider=account,
            summary=compute_rating_summary(account),
        )

    @app.post("/provider/review/<int:account_id>")
    def review_provider(account_id):
        try:
            form = parse_form(ReviewForm, request.form)
            review = submit_review(account_id, form.visitor_name, form.rating, form.comment)
        except ValidationError as e:
            notices.error(str(e))
            return redirect(url_for("public_profile", account_id=account_id))
        except NotFound:
            abort(404)

        if review.is_inquiry:
            notices.success("Your message has been sent to the provider.")
        else:
            notices.success("Thank you for your review!")
        return redirect(url_for("public_profile", account_id=account_id))

    # -----------------------------
    # ERRORS
    # -----------------------------
    @app.errorhandler(404)
    def not_found(e):
        return render_template("404.html", title="Not Found"), 404

    @app.errorhandler(SQLAlchemyError)
    def storage_error(e):
        db.session.rollback()
        logger.exception("Storage error on %s %s", request.method, request.path)
        return render_template("500.html", title="Something went wrong"), 500


# =========================================================
# CLI
# =========================================================
def register_commands(app):

    @app.cli.command("purge-sessions")
    def purge_sessions_command():
        """Delete expired rows from the web_sessions table."""
        print(f"Purged {purge_sessions(app)} expired sessions.")


def purge_sessions(app) -> int:
    session_store = app.session_interface.store
    if not hasattr(session_store, "purge_expired"):
        return 0
    with app.app_context():
        count = session_store.purge_expired()
    logger.info("Purged %s expired sessions", count)
    return count


# =========================================================
# APP FACTORY
# =========================================================
def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    login_manager.init_app(app)
    app.session_interface = StoreSessionInterface(make_store(app.config["SESSION_BACKEND"]))

    register_routes(app)
    register_commands(app)

    with app.app_context():
        db.create_all()

    return app


# =========================================================
# MAIN
# =========================================================
if __name__ == "__main__":
    create_app().run(debug=True)
