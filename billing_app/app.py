import os
from datetime import datetime, timezone

from flask import Flask, abort, g, jsonify, redirect, render_template, request, session
from werkzeug.utils import secure_filename

from billing_app import auth, cart, config, database, dates, forms, navigation, utils
from billing_app.context import RequestContext
from billing_app.csrf import check_request_token
from billing_app.session_store import SqliteSessionStore, StoreSessionInterface
from billing_app.validation import (
    collect_errors,
    validate_email,
    validate_file,
    validate_name,
    validate_password,
    validate_phone,
    validate_quantity,
    validate_rating,
    validate_service_id,
    validate_text,
)

# Initialize Flask application and settings
app = Flask(__name__)
app.config.update(
    SECRET_KEY=config.SECRET_KEY,
    MAX_CONTENT_LENGTH=config.MAX_CONTENT_LENGTH,
    SESSION_COOKIE_NAME=config.SESSION_COOKIE_NAME,
    SESSION_COOKIE_HTTPONLY=config.SESSION_COOKIE_HTTPONLY,
    SESSION_COOKIE_SECURE=config.SESSION_COOKIE_SECURE,
    SESSION_COOKIE_SAMESITE=config.SESSION_COOKIE_SAMESITE,
)
app.session_interface = StoreSessionInterface(SqliteSessionStore())

# Builders and filters available to every template
app.jinja_env.globals.update(
    {name: getattr(forms, name) for name in dir(forms)
     if name.startswith(("form_", "display_")) or name in (
         "quantity_input", "character_counter", "mobile_dropdown_menu", "dynamic_field_adder",
         "dynamic_field_template", "conditional_field", "sortable_header", "pagination")}
)
app.jinja_env.filters.update(
    price=utils.format_price,
    truncate_text=utils.truncate_text,
    format_date=dates.format_date,
    format_datetime=dates.format_datetime,
    time_elapsed=dates.time_elapsed,
)

# Endpoints a timed-out session may still reach
EXPIRY_EXEMPT = ("login", "logout", "static")

SUPPORT_MESSAGE_LIMIT = 1000


def _safe_next(target):
    """Only follow local absolute paths after login"""
    if not target or not target.startswith("/") or target.startswith("//"):
        return "/"
    return target


@app.before_request
def load_request_context():
    g.ctx = RequestContext(session)

    if g.ctx.logged_in and request.endpoint not in EXPIRY_EXEMPT:
        if auth.is_session_expired(g.ctx):
            app.logger.info("Session expired after inactivity")
            return redirect(auth.SESSION_EXPIRED_URL)

    if request.method == "POST":
        if not check_request_token(g.ctx, request.form.get(config.CSRF_FIELD_NAME)):
            app.logger.warning(f"CSRF check failed for {request.path} from {request.remote_addr}")
            abort(400)


@app.context_processor
def inject_layout():
    ctx = g.get("ctx") or RequestContext(session)
    endpoint = request.endpoint
    return {
        "ctx": ctx,
        "app_name": config.APP_NAME,
        "app_version": config.APP_VERSION,
        "header_links": navigation.header_links(ctx, endpoint),
        "sidebar_sections": navigation.sidebar_sections(ctx, endpoint),
        "tab_bar_links": navigation.tab_bar_links(ctx, endpoint),
        "current_year": datetime.now().year,
    }


# --- Catalogue and cart ---

@app.route('/')
def home():
    services = database.get_services()[:3]
    return render_template('index.html', services=services)


@app.route('/services')
def services():
    catalogue = {}
    for service in database.get_services():
        catalogue.setdefault(service["category"] or "Other", []).append(service)
    return render_template('services.html', catalogue=catalogue)


@app.route('/cart')
@auth.require_login
def cart_view():
    totals = cart.cart_totals(g.ctx.cart)
    return render_template('cart.html', items=g.ctx.cart, totals=totals, tax_rate=config.TAX_RATE)


@app.route('/cart/add', methods=['POST'])
@auth.require_login
def cart_add():
    service_id = request.form.get('service_id', '')
    quantity = request.form.get('quantity', '1')

    service_result = validate_service_id(service_id)
    quantity_result = validate_quantity(quantity)
    errors = collect_errors(service_id=service_result, quantity=quantity_result)
    if errors:
        for message in errors.values():
            g.ctx.notify('error', message)
        return redirect('/services')

    service = database.get_service(service_result.value)
    if service is None:
        g.ctx.notify('error', 'Invalid service selected')
        return redirect('/services')

    cart.add_to_cart(g.ctx, service, quantity_result.value)
    g.ctx.notify('success', f"{service['name']} added to your cart")
    return redirect('/cart')


@app.route('/cart/update', methods=['POST'])
@auth.require_login
def cart_update():
    service_id = request.form.get('service_id', '')
    quantity = request.form.get('quantity', '')

    service_result = validate_service_id(service_id)
    quantity_result = validate_quantity(quantity, min=0)
    errors = collect_errors(service_id=service_result, quantity=quantity_result)
    if errors:
        for message in errors.values():
            g.ctx.notify('error', message)
    elif cart.update_quantity(g.ctx, service_result.value, quantity_result.value):
        g.ctx.notify('success', 'Cart updated')
    else:
        g.ctx.notify('warning', 'That item is no longer in your cart')
    return redirect('/cart')


@app.route('/cart/remove', methods=['POST'])
@auth.require_login
def cart_remove():
    service_result = validate_service_id(request.form.get('service_id', ''))
    if service_result and cart.remove_from_cart(g.ctx, service_result.value):
        g.ctx.notify('success', 'Item removed from cart')
    return redirect('/cart')


@app.route('/cart/clear', methods=['POST'])
@auth.require_login
def cart_clear():
    cart.clear_cart(g.ctx)
    g.ctx.notify('info', 'Your cart is empty')
    return redirect('/cart')


# --- Authentication ---

@app.route('/auth/login', methods=['GET', 'POST'])
def login():
    ctx = g.ctx
    if request.method == 'GET':
        if ctx.logged_in:
            return redirect('/')
        expired = request.args.get('message') == 'session_expired'
        return render_template('auth/login.html', expired=expired)

    email = request.form.get('email', '').strip()
    password = request.form.get('password', '')

    errors = collect_errors(email=validate_email(email), password=validate_password(password, False))
    user = None if errors else auth.authenticate(email, password)

    if user is None:
        app.logger.warning(f"Failed login attempt for {email!r} from {request.remote_addr}")
        database.log_activity('login_failed', details=email)
        ctx.remember_input(request.form)
        ctx.notify('error', next(iter(errors.values()), 'Invalid email or password'))
        return redirect('/auth/login')

    target = _safe_next(ctx.session.pop('redirect_after_login', None))
    auth.login(ctx, user)
    database.log_activity('login', user['id'])
    app.logger.info(f"User {user['id']} logged in")
    ctx.notify('success', f"Welcome back, {user['fullname']}!")
    return redirect(target)


@app.route('/auth/register', methods=['GET', 'POST'])
def register():
    ctx = g.ctx
    if ctx.logged_in:
        return redirect('/')

    values = {}
    errors = {}
    if request.method == 'POST':
        values = {key: request.form.get(key, '').strip()
                  for key in ('fullname', 'email', 'phone')}
        password = request.form.get('password', '')

        errors = collect_errors(
            fullname=validate_name(values['fullname'], 'Full name'),
            email=validate_email(values['email']),
            password=validate_password(password, True),
        )
        if values['phone'] and not validate_phone(values['phone']):
            errors['phone'] = validate_phone(values['phone']).message
        if password != request.form.get('password_confirm', ''):
            errors['password_confirm'] = 'Passwords do not match'
        if not request.form.get('terms'):
            errors['terms'] = 'You must accept the terms of service'

        if not errors:
            result = auth.register_user(values['fullname'], values['email'], password,
                                        phone=values['phone'] or None)
            if result:
                database.log_activity('register', result.value)
                app.logger.info(f"New account registered: {result.value}")
                ctx.notify('success', 'Registration successful. You can now log in.')
                return redirect('/auth/login')
            errors['email'] = result.message

    return render_template('auth/register.html', values=values, errors=errors)


@app.route('/auth/logout')
def logout():
    user_id = g.ctx.user_id
    auth.logout(g.ctx)
    g.ctx.regenerate()
    if user_id is not None:
        database.log_activity('logout', user_id)
        app.logger.info(f"User {user_id} logged out")
    g.ctx.notify('info', 'You have been logged out')
    return redirect('/auth/login')


@app.route('/access-denied')
def access_denied():
    return render_template('access_denied.html'), 403


# --- Account pages ---

@app.route('/profile', methods=['GET', 'POST'])
@auth.require_login
def profile():
    ctx = g.ctx
    user = database.get_user_by_id(ctx.user_id)
    if user is None:
        auth.logout(ctx)
        return redirect(auth.LOGIN_URL)

    values = {'fullname': user['fullname'], 'email': user['email'], 'phone': user['phone'] or ''}
    errors = {}

    if request.method == 'POST' and request.form.get('action') == 'password':
        current = request.form.get('current_password', '')
        new_password = request.form.get('new_password', '')

        errors = collect_errors(new_password=validate_password(new_password, True))
        if not auth.verify_password(current, user['password_hash']):
            errors['current_password'] = 'Current password is incorrect'
        if new_password != request.form.get('password_confirm', ''):
            errors['password_confirm'] = 'Passwords do not match'

        if not errors:
            database.update_password(user['id'], auth.hash_password(new_password))
            database.log_activity('password_change', user['id'])
            ctx.notify('success', 'Password updated')
            return redirect('/profile')

    elif request.method == 'POST':
        values = {key: request.form.get(key, '').strip() for key in ('fullname', 'email', 'phone')}

        errors = collect_errors(fullname=validate_name(values['fullname'], 'Full name'),
                                email=validate_email(values['email']))
        if values['phone'] and not validate_phone(values['phone']):
            errors['phone'] = validate_phone(values['phone']).message
        if 'email' not in errors and database.email_exists(values['email'], exclude_id=user['id']):
            errors['email'] = 'Email already registered'

        if not errors:
            database.update_user(user['id'], values['fullname'], values['email'], values['phone'] or None)
            ctx.session['user_name'] = values['fullname']
            ctx.session['user_email'] = values['email'].lower()
            database.log_activity('profile_update', user['id'])
            ctx.notify('success', 'Profile updated')
            return redirect('/profile')

    return render_template('profile.html', user=user, values=values, errors=errors)


@app.route('/support', methods=['GET', 'POST'])
def support():
    ctx = g.ctx
    values = {'name': ctx.user_name, 'email': ctx.user_email or '', 'subject': '', 'message': '',
              'rating': '0'}
    errors = {}

    if request.method == 'POST':
        values = {key: request.form.get(key, '').strip()
                  for key in ('name', 'email', 'subject', 'message', 'rating')}
        values['rating'] = values['rating'] or '0'
        upload = request.files.get('attachment')
        has_upload = upload is not None and upload.filename
        rating = validate_rating(values['rating'])

        errors = collect_errors(
            name=validate_name(values['name']),
            email=validate_email(values['email']),
            subject=validate_text(values['subject'], 'Subject', 150),
            message=validate_text(values['message'], 'Message', SUPPORT_MESSAGE_LIMIT),
            rating=rating,
        )
        if has_upload:
            result = validate_file(upload, config.ALLOWED_ATTACHMENT_TYPES)
            if not result:
                errors['attachment'] = result.message

        if not errors:
            attachment = None
            if has_upload:
                os.makedirs(config.UPLOAD_DIR, exist_ok=True)
                ts = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S%f')
                attachment = secure_filename(f"{ts}-{upload.filename}")
                upload.save(os.path.join(config.UPLOAD_DIR, attachment))

            ticket_id = database.create_ticket(ctx.user_id, values['name'], values['email'],
                                               values['subject'], values['message'],
                                               rating.value, attachment)
            database.log_activity('support_ticket', ctx.user_id, f"Ticket #{ticket_id}")
            app.logger.info(f"Support ticket {ticket_id} created")
            ctx.notify('success', 'Your message has been sent. We will get back to you soon.')
            return redirect('/support')

    return render_template('support.html', values=values, errors=errors,
                           message_limit=SUPPORT_MESSAGE_LIMIT)


# --- Administration ---

@app.route('/admin/')
@auth.require_role(config.ROLE_STAFF, config.ROLE_ADMIN)
def admin_dashboard():
    stats = database.get_dashboard_stats()
    activity = database.get_recent_activity(limit=10)
    return render_template('admin/dashboard.html', stats=stats, activity=activity)


@app.route('/admin/users')
@auth.require_role(config.ROLE_ADMIN)
def admin_users():
    sort = request.args.get('sort', 'created_at')
    if sort not in database.USER_SORT_COLUMNS:
        sort = 'created_at'
    order = 'asc' if request.args.get('order') == 'asc' else 'desc'

    page = forms.paginate(database.count_users(), config.ITEMS_PER_PAGE,
                          request.args.get('page', 1, type=int))
    users = database.list_users(page.per_page, page.offset, sort, order)

    return render_template(
        'admin/users.html',
        users=users,
        page=page,
        sort=sort,
        order=order,
        sort_url='/admin/users?sort={sort}&order={order}',
        page_url=f'/admin/users?sort={sort}&order={order}&page={{page}}',
    )


@app.route('/activity_log')
@auth.require_role(config.ROLE_STAFF, config.ROLE_ADMIN)
def activity_log():
    try:
        enriched = []
        for entry in database.get_recent_activity(limit=config.MAX_ACTIVITY_ENTRIES)[:50]:
            enriched.append({
                "type": entry["action"],
                "description": entry["details"] or "",
                "user_id": entry["user_id"],
                "timestamp": entry["created_at"],
                "time_ago": dates.time_elapsed(entry["created_at"]),
            })
        return jsonify({"activities": enriched})
    except (ValueError, OverflowError) as e:
        app.logger.error(f"Activity log error: {e}")
        return jsonify({"activities": []})


# --- Error pages ---

ERROR_MESSAGES = {
    400: "The form has expired or could not be verified. Please go back and try again.",
    404: "The page you are looking for could not be found.",
    413: "The uploaded file is too large.",
    500: "Something went wrong on our side. Please try again later.",
}


def _error_page(code):
    return render_template('error.html', code=code, message=ERROR_MESSAGES[code]), code


@app.errorhandler(400)
def bad_request(e):
    return _error_page(400)


@app.errorhandler(404)
def not_found(e):
    return _error_page(404)


@app.errorhandler(413)
def too_large(e):
    return _error_page(413)


@app.errorhandler(500)
def server_error(e):
    app.logger.error(f"Server error: {e}")
    return _error_page(500)


# Initialize database on startup (non-blocking)
try:
    with app.app_context():
        database.init_db()
        database.seed_services()
        if config.ADMIN_PASSWORD:
            auth.ensure_admin(config.ADMIN_EMAIL, config.ADMIN_PASSWORD)
        app.logger.info("Database initialized successfully")
except Exception as e:
    app.logger.error(f"Database initialization error: {e}")

# Run the application
if __name__ == '__main__':
    utils.setup_logging(config.LOG_FILE)
    app.run(debug=False, port=5001, threaded=True)
