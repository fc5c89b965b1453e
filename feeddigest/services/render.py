from flask import render_template


def render_update_email(data):
    return render_template('email/update.html', **data)
