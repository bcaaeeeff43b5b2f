"""
SSL context construction from TLS options.
"""
import ssl

_VERSIONS = {
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}


def create_ssl_context(tls_config) -> ssl.SSLContext:
    """
    Build an SSLContext for a TLS upgrade.

    Without a CA the server certificate is not verified, matching the
    ``REQUIRED`` ssl mode. With a CA the chain is verified and an optional
    CRL is loaded, but the host name is not checked.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False

    if tls_config.ca:
        context.verify_mode = ssl.CERT_REQUIRED
        context.load_verify_locations(cafile=tls_config.ca)
        if tls_config.crl:
            context.load_verify_locations(cafile=tls_config.crl)
            context.verify_flags |= ssl.VERIFY_CRL_CHECK_LEAF
    else:
        context.verify_mode = ssl.CERT_NONE

    if tls_config.versions:
        versions = sorted(_VERSIONS[name] for name in tls_config.versions)
        context.minimum_version = versions[0]
        context.maximum_version = versions[-1]

    if tls_config.ciphersuites:
        context.set_ciphers(":".join(tls_config.ciphersuites))

    return context
