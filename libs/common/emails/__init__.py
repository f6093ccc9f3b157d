"""
UniShopper Email Package.

Modules:
- client: KlaviyoClient for recording customer events (Klaviyo sends the mail)
- orders: one send function per order lifecycle stage
"""
